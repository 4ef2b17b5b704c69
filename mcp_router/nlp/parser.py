"""
Request Parser

Runs the parse stage: normalize -> classify + extract -> map capabilities,
category and strategy. Structured requests skip classification and
extraction entirely and are taken as already parsed.
"""

from typing import Optional

from ..core.errors import MalformedInput
from ..core.types import ParsedRequest, RoutingRequest
from .capability_mapper import CapabilityMapper
from .entity_extractor import EntityExtractor
from .intent_classifier import IntentClassifier
from .normalizer import normalize


STRUCTURED_CONFIDENCE = 1.0


class RequestParser:
    """Turns a RoutingRequest into an immutable ParsedRequest."""

    def __init__(
        self,
        classifier: Optional[IntentClassifier] = None,
        extractor: Optional[EntityExtractor] = None,
        mapper: Optional[CapabilityMapper] = None,
    ):
        self.classifier = classifier or IntentClassifier()
        self.extractor = extractor or EntityExtractor()
        self.mapper = mapper or CapabilityMapper()

    def parse(self, request: RoutingRequest) -> ParsedRequest:
        if request.is_structured:
            return self.parse_structured(request)
        if request.query is not None and not isinstance(request.query, str):
            raise MalformedInput("'query' must be a string")
        if not request.has_text:
            raise MalformedInput(
                "Either non-blank 'query' text or structured input (intent + capabilities) is required"
            )
        return self.parse_text(request.query)

    def parse_text(self, raw_text: str) -> ParsedRequest:
        normalized = normalize(raw_text)

        # No shared state between these two
        label = self.classifier.classify(normalized)
        entities = self.extractor.extract(raw_text.strip())

        return ParsedRequest(
            raw_text=raw_text,
            normalized_text=normalized,
            intent=label.name,
            confidence=label.confidence,
            entities=entities,
            capabilities=self.mapper.map_capabilities(label.name),
            category=self.mapper.classify_category(label.name),
            strategy=self.mapper.select_strategy(label.name),
        )

    def parse_structured(self, request: RoutingRequest) -> ParsedRequest:
        intent = str(request.intent)
        capabilities = []
        for cap in request.capabilities:
            cap = str(cap).strip()
            if cap and cap not in capabilities:
                capabilities.append(cap)

        raw_text = request.query if request.has_text else f"Structured: {intent}"
        return ParsedRequest(
            raw_text=raw_text,
            normalized_text=normalize(request.query) if request.has_text else "",
            intent=intent,
            confidence=STRUCTURED_CONFIDENCE,
            entities={str(k): str(v) for k, v in (request.entities or {}).items()},
            capabilities=tuple(capabilities),
            category=request.category or self.mapper.classify_category(intent),
            strategy=self.mapper.select_strategy(intent),
            structured=True,
        )
