"""
MCP Router Core Module

The routing pipeline and the pieces it is built from:
- Config: weights, bounds, collaborators
- Types and errors shared by every stage
- FallbackChain: relax-then-fail candidate walk
- RoutingEngine: parse -> cache -> rank -> select -> invoke
"""

from .config import Config, RankingConfig, CacheConfig, CatalogConfig, ExecutionConfig, StateConfig
from .errors import (
    RouterError,
    MalformedInput,
    NoCandidateFound,
    NoMatchingTool,
    UpstreamTimeout,
    UpstreamFailure,
)
from .types import (
    StrategyKind,
    IntentLabel,
    ParsedRequest,
    ToolDescriptor,
    ProviderRecord,
    ScoredCandidate,
    CatalogFilter,
    RoutingRequest,
    RoutingResponse,
)
from .fallback import FallbackChain, Selection
from .engine import RoutingEngine, build_engine, build_catalog, get_engine, set_engine, route

__all__ = [
    "Config",
    "RankingConfig",
    "CacheConfig",
    "CatalogConfig",
    "ExecutionConfig",
    "StateConfig",
    # Errors
    "RouterError",
    "MalformedInput",
    "NoCandidateFound",
    "NoMatchingTool",
    "UpstreamTimeout",
    "UpstreamFailure",
    # Types
    "StrategyKind",
    "IntentLabel",
    "ParsedRequest",
    "ToolDescriptor",
    "ProviderRecord",
    "ScoredCandidate",
    "CatalogFilter",
    "RoutingRequest",
    "RoutingResponse",
    # Pipeline
    "FallbackChain",
    "Selection",
    "RoutingEngine",
    "build_engine",
    "build_catalog",
    "get_engine",
    "set_engine",
    "route",
]
