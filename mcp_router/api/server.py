"""
MCP Router Web API

FastAPI server providing:
1. Routing endpoints (free text or structured intent)
2. Parse-only endpoints
3. Provider catalog access
4. Cache and engine status

Routing failures come back as JSON with the status code of the error
(400 malformed input, 404 nothing matched, 502/504 upstream trouble).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..core.engine import get_engine
from ..core.errors import RouterError
from ..core.types import CatalogFilter, RoutingRequest

app = FastAPI(
    title="MCP Router",
    description="Routes natural-language requests to the best-matching MCP server",
    version=__version__,
)

# CORS for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Models ---

class RouteRequest(BaseModel):
    # Not typed as str: a non-string query is reported as malformed input
    query: Optional[Any] = None
    context: Dict[str, Any] = {}
    intent: Optional[str] = None
    capabilities: List[str] = []
    category: Optional[str] = None
    entities: Dict[str, str] = {}
    params: Dict[str, Any] = {}
    require_verified: Optional[bool] = None
    return_debug_info: bool = False

    def to_routing_request(self) -> RoutingRequest:
        return RoutingRequest(
            query=self.query,
            context=self.context,
            intent=self.intent,
            capabilities=self.capabilities,
            category=self.category,
            entities=self.entities,
            params=self.params,
            require_verified=self.require_verified,
            return_debug_info=self.return_debug_info,
        )


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _query_request(
    query: Optional[str],
    intent: Optional[str],
    capabilities: Optional[str],
    category: Optional[str],
    debug: bool = False,
) -> RoutingRequest:
    return RoutingRequest(
        query=query or None,
        intent=intent or None,
        capabilities=_split(capabilities),
        category=category or None,
        return_debug_info=debug,
    )


async def _route(request: RoutingRequest) -> JSONResponse:
    response = await get_engine().handle(request)
    return JSONResponse(status_code=response.status_code, content=response.to_dict())


def _parse(request: RoutingRequest) -> JSONResponse:
    try:
        parsed = get_engine().parse(request)
    except RouterError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.to_dict()},
        )
    return JSONResponse(content={"success": True, "parsed": parsed})


# --- Endpoints ---

@app.get("/")
async def root():
    return {
        "name": "MCP Router",
        "version": __version__,
        "endpoints": [
            "/api/route",
            "/api/parse",
            "/api/providers",
            "/api/status",
            "/api/cache",
        ],
    }


@app.post("/api/route")
async def route_post(request: RouteRequest):
    """Route a request and execute the chosen tool."""
    return await _route(request.to_routing_request())


@app.get("/api/route")
async def route_get(
    query: Optional[str] = None,
    intent: Optional[str] = None,
    capabilities: Optional[str] = None,
    category: Optional[str] = None,
    debug: bool = False,
):
    """Same as POST, with comma-separated capabilities."""
    return await _route(_query_request(query, intent, capabilities, category, debug))


@app.post("/api/parse")
async def parse_post(request: RouteRequest):
    """Parse a request without ranking or executing anything."""
    return _parse(request.to_routing_request())


@app.get("/api/parse")
async def parse_get(
    query: Optional[str] = None,
    intent: Optional[str] = None,
    capabilities: Optional[str] = None,
    category: Optional[str] = None,
):
    return _parse(_query_request(query, intent, capabilities, category))


@app.get("/api/providers")
async def list_providers(category: Optional[str] = None, verified: bool = False):
    """List catalog providers."""
    catalog = get_engine().catalog
    try:
        if hasattr(catalog, "list_all"):
            providers = catalog.list_all()
            if category:
                providers = [p for p in providers if p.category.lower() == category.lower()]
            if verified:
                providers = [p for p in providers if p.verified]
        else:
            providers = await catalog.query(
                CatalogFilter(category=category, require_verified=verified)
            )
    except RouterError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"providers": [], "error": e.to_dict()},
        )

    providers = sorted(providers, key=lambda p: p.id)
    return {"providers": [p.to_dict() for p in providers], "count": len(providers)}


@app.get("/api/status")
async def get_status():
    """Get overall router status."""
    return {
        "status": "running",
        "version": __version__,
        "engine": get_engine().status(),
        "last_updated": datetime.now().isoformat(),
    }


@app.get("/api/cache")
async def cache_stats():
    return get_engine().cache.stats()


@app.delete("/api/cache")
async def clear_cache():
    cleared = get_engine().cache.clear()
    return {"success": True, "cleared": cleared}


# --- Run ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
