"""
HTTP API Tests

Drives the FastAPI app in-process through TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from mcp_router import __version__
from mcp_router.api.server import app
from mcp_router.core.config import Config
from mcp_router.core.engine import RoutingEngine, set_engine
from mcp_router.mcp.invoker import MockInvoker
from mcp_router.mcp.registry import InMemoryCatalog


@pytest.fixture
def client():
    set_engine(RoutingEngine(
        config=Config(),
        catalog=InMemoryCatalog(include_builtin=True),
        invoker=MockInvoker(),
    ))
    with TestClient(app) as test_client:
        yield test_client
    set_engine(None)


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == __version__
    assert "/api/route" in data["endpoints"]


def test_route_post(client):
    resp = client.post("/api/route", json={"query": "weather in Seoul"})
    assert resp.status_code == 200

    data = resp.json()
    assert data["success"] is True
    assert data["metadata"]["chosen_provider"] == "@smithery/weather"
    assert data["metadata"]["chosen_tool"] == "get_current_weather"
    assert data["result"]["location"] == "Seoul"
    assert "debug_info" not in data


def test_route_post_structured(client):
    resp = client.post("/api/route", json={
        "intent": "stock_price_query",
        "capabilities": ["stock_price"],
        "entities": {"stock_symbol": "MSFT"},
    })
    data = resp.json()
    assert data["metadata"]["confidence"] == 1.0
    assert data["result"]["symbol"] == "MSFT"


def test_route_get_with_debug(client):
    resp = client.get("/api/route", params={"query": "bitcoin price", "debug": "true"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["debug_info"]["ranking"][0]["provider"] == "@coincap/crypto-prices"


def test_route_get_structured(client):
    resp = client.get("/api/route", params={
        "intent": "weather_query",
        "capabilities": "weather_lookup, location_search",
    })
    data = resp.json()
    assert data["parsed"]["capabilities"] == ["weather_lookup", "location_search"]
    assert data["metadata"]["chosen_provider"] == "@smithery/weather"


def test_route_malformed_is_400(client):
    resp = client.post("/api/route", json={})
    assert resp.status_code == 400
    data = resp.json()
    assert data["success"] is False
    assert data["error"]["code"] == "malformed_input"


def test_route_non_string_query_is_400(client):
    resp = client.post("/api/route", json={"query": 42})
    assert resp.status_code == 400


def test_route_no_candidate_is_404(client):
    set_engine(RoutingEngine(catalog=InMemoryCatalog()))
    resp = client.post("/api/route", json={"query": "weather in Seoul"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "no_candidate_found"


def test_route_caches_repeated_request(client):
    first = client.post("/api/route", json={"query": "bitcoin price"}).json()
    second = client.post("/api/route", json={"query": "Bitcoin price"}).json()

    assert first["metadata"]["cached"] is False
    assert second["metadata"]["cached"] is True
    assert "cache_age_ms" in second["metadata"]


def test_parse(client):
    resp = client.post("/api/parse", json={"query": "translate hello to french"})
    data = resp.json()
    assert data["success"] is True
    assert data["parsed"]["intent"] == "translation"
    assert data["parsed"]["category"] == "Language"


def test_parse_get(client):
    resp = client.get("/api/parse", params={"query": "weather in Seoul"})
    assert resp.json()["parsed"]["entities"] == {"location": "Seoul"}


def test_parse_malformed(client):
    resp = client.post("/api/parse", json={"intent": "weather_query"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_list_providers(client):
    data = client.get("/api/providers").json()
    assert data["count"] == 7
    ids = [p["id"] for p in data["providers"]]
    assert ids == sorted(ids)


def test_list_providers_filtered(client):
    data = client.get("/api/providers", params={"category": "finance"}).json()
    assert {p["id"] for p in data["providers"]} == {
        "@coincap/crypto-prices",
        "@alphavantage/stocks",
    }

    verified = client.get("/api/providers", params={"verified": "true"}).json()
    assert "@skyscanner/flights" not in {p["id"] for p in verified["providers"]}
    assert verified["count"] == 6


def test_status(client):
    data = client.get("/api/status").json()
    assert data["status"] == "running"
    assert data["engine"]["catalog_size"] == 7
    assert data["engine"]["single_flight"] is True


def test_cache_stats_and_clear(client):
    client.post("/api/route", json={"query": "weather in Seoul"})
    assert client.get("/api/cache").json()["entries"] == 1

    resp = client.delete("/api/cache")
    assert resp.json() == {"success": True, "cleared": 1}
    assert client.get("/api/cache").json()["entries"] == 0
