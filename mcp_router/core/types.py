"""
Data types used throughout the router.

Requests flow through these in one direction:
RoutingRequest -> ParsedRequest -> ScoredCandidate -> RoutingResponse
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
import json


class StrategyKind(Enum):
    """High-level handling mode for a parsed request."""
    DIRECT_EXECUTION = "direct_execution"   # Run the best provider immediately
    PRESENT_OPTIONS = "present_options"     # Let the user choose among providers
    FALLBACK = "fallback"                   # Same as direct, tagged for observability


@dataclass(frozen=True)
class IntentLabel:
    """Result of intent classification."""
    name: str
    confidence: float
    matched_pattern: str = "fallback"


@dataclass(frozen=True)
class ParsedRequest:
    """A request after the parse stage. Never mutated afterwards."""
    raw_text: str
    normalized_text: str
    intent: str
    confidence: float
    entities: Dict[str, str] = field(default_factory=dict)
    capabilities: Tuple[str, ...] = ()
    category: str = "General"
    strategy: StrategyKind = StrategyKind.FALLBACK
    structured: bool = False

    def to_summary(self) -> Dict[str, Any]:
        return {
            "raw_text": self.raw_text,
            "normalized_text": self.normalized_text,
            "intent": self.intent,
            "confidence": self.confidence,
            "entities": dict(self.entities),
            "capabilities": list(self.capabilities),
            "category": self.category,
            "strategy": self.strategy.value,
            "structured": self.structured,
        }


@dataclass(frozen=True)
class ToolDescriptor:
    """A single named operation exposed by a provider."""
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "ToolDescriptor":
        if isinstance(data, str):
            return cls(name=data)
        return cls(
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description}


@dataclass(frozen=True)
class ProviderRecord:
    """A catalog entry. Owned by the catalog, read-only to the router."""
    id: str
    display_name: str
    description: str = ""
    category: str = ""
    tags: FrozenSet[str] = frozenset()
    tools: Tuple[ToolDescriptor, ...] = ()
    verified: bool = False
    usage_count: int = 0
    author: str = ""
    endpoint: Optional[str] = None

    @property
    def tool_text(self) -> str:
        """Lower-cased names and descriptions of every tool, for substring matching."""
        parts = []
        for tool in self.tools:
            parts.append(tool.name)
            parts.append(tool.description)
        return " ".join(parts).lower()

    @property
    def tag_text(self) -> str:
        return " ".join(sorted(self.tags)).lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderRecord":
        """
        Build a record from a catalog row.

        Accepts both snake_case and the camelCase keys used by registry
        exports. `tools` may arrive as a JSON-encoded string.
        """
        tools_raw = data.get("tools") or []
        if isinstance(tools_raw, str):
            tools_raw = json.loads(tools_raw) if tools_raw.strip() else []

        tags_raw = data.get("tags") or []
        if isinstance(tags_raw, str):
            tags_raw = [t.strip() for t in tags_raw.split(",") if t.strip()]

        usage = data.get("usage_count", data.get("usageCount", data.get("use_count", 0)))

        return cls(
            id=str(data.get("id") or data.get("qualified_name") or ""),
            display_name=str(
                data.get("display_name") or data.get("displayName") or data.get("name") or ""
            ),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            tags=frozenset(str(t) for t in tags_raw),
            tools=tuple(ToolDescriptor.from_dict(t) for t in tools_raw),
            verified=bool(
                data.get("verified", data.get("security_scan_passed", False))
            ),
            usage_count=max(0, int(usage or 0)),
            author=str(data.get("author") or ""),
            endpoint=data.get("endpoint") or data.get("deployment_url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category,
            "tags": sorted(self.tags),
            "tools": [t.to_dict() for t in self.tools],
            "verified": self.verified,
            "usage_count": self.usage_count,
            "author": self.author,
            "endpoint": self.endpoint,
        }


@dataclass
class ScoredCandidate:
    """A provider scored against one request."""
    provider: ProviderRecord
    score: float
    matched_tool: Optional[ToolDescriptor] = None

    @property
    def confidence(self) -> float:
        return min(self.score / 100.0, 1.0)


@dataclass(frozen=True)
class CatalogFilter:
    """What the ranking engine asks the catalog for."""
    category: Optional[str] = None
    capability_terms: Tuple[str, ...] = ()
    query_terms: Tuple[str, ...] = ()
    require_verified: bool = False


@dataclass
class RoutingRequest:
    """
    Inbound request surface.

    Either free text (`query`) or structured fields (`intent` plus
    `capabilities`) must be supplied.
    """
    query: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    intent: Optional[str] = None
    capabilities: List[str] = field(default_factory=list)
    category: Optional[str] = None
    entities: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    require_verified: Optional[bool] = None
    return_debug_info: bool = False

    @property
    def is_structured(self) -> bool:
        return bool(self.intent) and bool(self.capabilities)

    @property
    def has_text(self) -> bool:
        # Whitespace-only text counts as no text
        return isinstance(self.query, str) and bool(self.query.strip())


@dataclass
class RoutingResponse:
    """Outbound response surface."""
    success: bool
    parsed: Optional[Dict[str, Any]] = None
    result: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None
    debug_info: Optional[Dict[str, Any]] = None
    status_code: int = 200  # HTTP equivalent, not serialized
    ranking: List[Dict[str, Any]] = field(default_factory=list)  # Ranking table, not serialized

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "result": self.result,
            "parsed": self.parsed,
            "metadata": self.metadata,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.debug_info is not None:
            data["debug_info"] = self.debug_info
        return data
