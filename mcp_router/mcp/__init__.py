"""
MCP Module

Everything that touches providers:
1. The catalog the router queries
2. Ranking providers against a parsed request
3. Choosing a tool on the chosen provider
4. Invoking that tool
"""

from .registry import Catalog, InMemoryCatalog, HttpCatalog, matches_filter
from .ranking import CandidateRanker, RequestTerms, ScoreBreakdown
from .tool_selector import ToolSelector, INTENT_TOOL_KEYWORDS, keywords_for_intent
from .invoker import Invoker, MockInvoker, HttpInvoker, build_invoker

__all__ = [
    "Catalog",
    "InMemoryCatalog",
    "HttpCatalog",
    "matches_filter",
    "CandidateRanker",
    "RequestTerms",
    "ScoreBreakdown",
    "ToolSelector",
    "INTENT_TOOL_KEYWORDS",
    "keywords_for_intent",
    "Invoker",
    "MockInvoker",
    "HttpInvoker",
    "build_invoker",
]
