"""
MCP Router - Intent Routing & Ranking Engine

Takes a free-form request ("weather in Seoul") or a structured intent,
finds the best-matching MCP server in a provider catalog, picks its most
relevant tool and returns the result with routing metadata.

Usage as a library:
    from mcp_router import RoutingEngine, RoutingRequest

    engine = RoutingEngine()
    response = await engine.handle(RoutingRequest(query="bitcoin price"))

    # response.metadata holds:
    # - strategy, chosen_provider, chosen_tool, confidence
    # - alternates: [{provider, confidence}]
    # - cached / cache_age_ms, elapsed_ms
"""

__version__ = "1.0.0"
__author__ = "MCP Team"

from .core import (
    Config,
    RoutingEngine,
    RoutingRequest,
    RoutingResponse,
    ParsedRequest,
    ProviderRecord,
    ToolDescriptor,
    RouterError,
    build_engine,
    get_engine,
)
from .mcp import InMemoryCatalog, HttpCatalog

__all__ = [
    "Config",
    "RoutingEngine",
    "RoutingRequest",
    "RoutingResponse",
    "ParsedRequest",
    "ProviderRecord",
    "ToolDescriptor",
    "RouterError",
    "build_engine",
    "get_engine",
    "InMemoryCatalog",
    "HttpCatalog",
]
