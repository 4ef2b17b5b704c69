"""
Collaborator and Wiring Tests

Tests for:
1. HTTP catalog and HTTP invoker (httpx MockTransport)
2. Catalog rows and file loading
3. Config loading and validation
4. Audit trail and logging setup
5. Command line entry point
"""

import json
import logging

import httpx
import pytest

from mcp_router.core.config import Config, ExecutionConfig
from mcp_router.core.engine import build_catalog
from mcp_router.core.errors import UpstreamFailure, UpstreamTimeout
from mcp_router.core.logging import level_from_name, setup_logger
from mcp_router.core.types import CatalogFilter, ProviderRecord, ToolDescriptor
from mcp_router.main import main
from mcp_router.mcp.invoker import HttpInvoker, MockInvoker, build_invoker
from mcp_router.mcp.registry import HttpCatalog, InMemoryCatalog
from mcp_router.state.audit_logger import AuditLogger

from .conftest import make_provider


ROWS = [
    {
        "qualified_name": "@coincap/crypto-prices",
        "displayName": "Crypto Prices",
        "category": "Finance",
        "tools": json.dumps([{"name": "get_crypto_price", "description": "price"}]),
        "security_scan_passed": True,
        "usageCount": 10,
    },
    {
        "id": "community/coins",
        "display_name": "Coins",
        "category": "Finance",
        "tools": ["lookup"],
        "verified": False,
    },
]


# --- HttpCatalog ---

async def test_http_catalog_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"providers": ROWS})

    catalog = HttpCatalog("http://registry.local/", transport=httpx.MockTransport(handler))
    providers = await catalog.query(CatalogFilter(
        category="Finance",
        capability_terms=("crypto_price",),
        query_terms=("btc",),
        require_verified=False,
    ))

    assert seen["path"] == "/api/providers/search"
    assert seen["params"]["category"] == "Finance"
    assert seen["params"]["verified"] == "false"
    assert seen["params"]["terms"] == "crypto_price,btc"
    assert [p.id for p in providers] == ["@coincap/crypto-prices", "community/coins"]
    assert providers[0].tools == (ToolDescriptor("get_crypto_price", "price"),)


async def test_http_catalog_drops_unverified_when_required():
    def handler(request):
        return httpx.Response(200, json=ROWS)

    catalog = HttpCatalog("http://registry.local", transport=httpx.MockTransport(handler))
    providers = await catalog.query(CatalogFilter(require_verified=True))
    assert [p.id for p in providers] == ["@coincap/crypto-prices"]


async def test_http_catalog_server_error():
    catalog = HttpCatalog(
        "http://registry.local",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(UpstreamFailure):
        await catalog.query(CatalogFilter())


async def test_http_catalog_timeout():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    catalog = HttpCatalog("http://registry.local", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamTimeout):
        await catalog.query(CatalogFilter())


# --- HttpInvoker ---

ENDPOINT_PROVIDER = ProviderRecord(
    id="@coincap/crypto-prices",
    display_name="Crypto Prices",
    tools=(ToolDescriptor("get_crypto_price"),),
    endpoint="http://provider.local/mcp",
)


async def test_http_invoker_sends_json_rpc():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"price": "$1"}})

    invoker = HttpInvoker(transport=httpx.MockTransport(handler))
    result = await invoker.invoke(
        ENDPOINT_PROVIDER,
        ENDPOINT_PROVIDER.tools[0],
        {"intent": "crypto_price_query", "cryptocurrency": "bitcoin", "query": "bitcoin price"},
    )

    assert result == {"price": "$1"}
    assert seen["url"] == "http://provider.local/mcp"
    assert seen["body"]["jsonrpc"] == "2.0"
    assert seen["body"]["method"] == "tools/call"
    assert seen["body"]["params"] == {
        "name": "get_crypto_price",
        "arguments": {"cryptocurrency": "bitcoin", "query": "bitcoin price"},
    }


async def test_http_invoker_wraps_non_dict_results():
    invoker = HttpInvoker(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json={"result": ["a", "b"]})
    ))
    result = await invoker.invoke(ENDPOINT_PROVIDER, ENDPOINT_PROVIDER.tools[0], {})
    assert result == {"content": ["a", "b"]}


async def test_http_invoker_json_rpc_error():
    invoker = HttpInvoker(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json={"error": {"code": -32000, "message": "boom"}})
    ))
    with pytest.raises(UpstreamFailure) as exc_info:
        await invoker.invoke(ENDPOINT_PROVIDER, ENDPOINT_PROVIDER.tools[0], {})
    assert "boom" in exc_info.value.message


async def test_http_invoker_timeout():
    def handler(request):
        raise httpx.ConnectTimeout("no route", request=request)

    invoker = HttpInvoker(transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamTimeout):
        await invoker.invoke(ENDPOINT_PROVIDER, ENDPOINT_PROVIDER.tools[0], {})


async def test_http_invoker_needs_endpoint():
    provider = make_provider("p/local", "Local")
    with pytest.raises(UpstreamFailure):
        await HttpInvoker().invoke(provider, provider.tools[0], {})


def test_build_invoker():
    assert isinstance(build_invoker(ExecutionConfig()), MockInvoker)
    http = build_invoker(ExecutionConfig(invoker="http", timeout_seconds=12))
    assert isinstance(http, HttpInvoker)
    assert http.timeout_seconds == 12


def test_mock_results_by_intent():
    mock = MockInvoker()
    assert mock.mock_result("crypto_price_query", {"cryptocurrency": "eth"})["symbol"] == "eth"
    assert mock.mock_result("stock_price_query", {})["symbol"] == "AAPL"
    assert mock.mock_result("weather_query", {})["location"] == "Current Location"
    assert mock.mock_result("web_search", {"query": "otters"})["results"][0]["title"].startswith("otters")
    assert mock.mock_result("something_else", {"query": "hi"})["answer"] == "Processed: hi"


# --- Catalog rows and files ---

def test_provider_record_from_camel_case_row():
    record = ProviderRecord.from_dict(ROWS[0])
    assert record.id == "@coincap/crypto-prices"
    assert record.display_name == "Crypto Prices"
    assert record.verified is True
    assert record.usage_count == 10
    assert record.tool_text == "get_crypto_price price"


def test_provider_record_tolerates_bad_fields():
    record = ProviderRecord.from_dict({"id": "x", "name": "X", "tags": "a, b", "tools": ""})
    assert record.tags == frozenset({"a", "b"})
    assert record.tools == ()
    assert record.verified is False


def test_load_catalog_from_file(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(
        "- id: local/notes\n"
        "  display_name: Notes\n"
        "  category: Productivity\n"
        "  tools:\n"
        "    - name: add_note\n"
        "      description: Add a note\n",
        encoding="utf-8",
    )
    catalog = InMemoryCatalog.load_from_file(str(path))
    assert len(catalog) == 1
    assert catalog.get("local/notes").tools[0].name == "add_note"
    assert catalog.get_by_category("productivity")[0].id == "local/notes"


# --- Config ---

def test_config_defaults_are_valid():
    config = Config()
    assert config.validate() == []
    assert config.ranking.verified_bonus == 10.0
    assert config.cache.ttl_seconds == 300.0
    assert config.ranking.max_candidates == 3


def test_config_load_from_file(tmp_path):
    path = tmp_path / "router.yaml"
    path.write_text(
        "ranking:\n"
        "  max_candidates: 5\n"
        "execution:\n"
        "  strict: true\n"
        "debug: true\n"
        "log_level: DEBUG\n",
        encoding="utf-8",
    )
    config = Config.load_from_file(str(path))
    assert config.ranking.max_candidates == 5
    assert config.ranking.verified_bonus == 10.0
    assert config.execution.strict is True
    assert config.debug is True
    assert config.log_level == "DEBUG"


def test_config_load_from_env(monkeypatch):
    monkeypatch.setenv("ROUTER_CACHE_TTL", "60")
    monkeypatch.setenv("ROUTER_STRICT", "true")
    monkeypatch.setenv("ROUTER_CATALOG_SOURCE", "http")
    monkeypatch.setenv("ROUTER_CATALOG_URL", "http://registry.local")
    monkeypatch.setenv("ROUTER_REQUIRE_VERIFIED", "false")

    config = Config.load_from_env()
    assert config.cache.ttl_seconds == 60.0
    assert config.execution.strict is True
    assert config.execution.require_verified is False
    assert config.validate() == []
    assert isinstance(build_catalog(config), HttpCatalog)


def test_config_validate_reports_errors():
    config = Config()
    config.ranking.max_candidates = 0
    config.catalog.source = "http"
    config.execution.invoker = "grpc"

    errors = config.validate()
    assert "max_candidates must be at least 1" in errors
    assert "catalog base_url is required for the http source" in errors
    assert "unknown invoker: grpc" in errors


# --- Audit and logging ---

def test_audit_logger_appends_json_lines(tmp_path):
    audit = AuditLogger(str(tmp_path / "nested" / "audit.log"))
    audit.log_request("r1", "weather in Seoul", False)
    audit.log_selection("r1", "@smithery/weather", "get_current_weather", 0.5)
    audit.log_failure("r2", "no_candidate_found", "nothing matched")

    events = audit.get_request_events("r1")
    assert [e["event_type"] for e in events] == ["request_received", "provider_selected"]
    assert events[1]["details"]["tool"] == "get_current_weather"

    failure = audit.get_recent_events(1)[0]
    assert failure["success"] is False
    assert failure["error"] == "nothing matched"


def test_setup_logger_only_touches_package_logger():
    logger = setup_logger(debug=True)
    assert logger.name == "mcp_router"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    setup_logger(level=logging.WARNING)
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_level_from_name():
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name("bogus") == logging.INFO


# --- CLI ---

@pytest.fixture
def clean_env(monkeypatch):
    for name in ("ROUTER_AUDIT_LOG", "ROUTER_CATALOG_SOURCE", "ROUTER_INVOKER", "ROUTER_STRICT"):
        monkeypatch.delenv(name, raising=False)


def test_cli_routes_query(clean_env, capsys):
    assert main(["--query", "weather in Seoul"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["metadata"]["chosen_provider"] == "@smithery/weather"


def test_cli_structured(clean_env, capsys):
    code = main(["--intent", "stock_price_query", "--capabilities", "stock_price"])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["parsed"]["confidence"] == 1.0


def test_cli_without_request_prints_hint(clean_env, capsys):
    assert main([]) == 0
    assert "Nothing to route" in capsys.readouterr().out


def test_cli_rejects_invalid_config(clean_env, tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("cache:\n  ttl_seconds: 0\n", encoding="utf-8")
    assert main(["--config", str(path), "--query", "weather"]) == 1
    assert "ttl_seconds" in capsys.readouterr().out
