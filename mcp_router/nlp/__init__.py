"""
NLP Module

Parse stage of the router: text normalization, intent classification,
entity extraction, semantic expansion and capability mapping.
"""

from .normalizer import normalize, tokenize
from .intent_classifier import IntentClassifier, INTENT_TABLE
from .entity_extractor import EntityExtractor
from .semantic_expander import SemanticExpander, SynonymTable
from .capability_mapper import CapabilityMapper
from .parser import RequestParser

__all__ = [
    "normalize",
    "tokenize",
    "IntentClassifier",
    "INTENT_TABLE",
    "EntityExtractor",
    "SemanticExpander",
    "SynonymTable",
    "CapabilityMapper",
    "RequestParser",
]
