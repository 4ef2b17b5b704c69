"""
Provider Catalog

The router does not own provider persistence. It consumes one query surface:

    query(CatalogFilter) -> List[ProviderRecord]

Two implementations:
- InMemoryCatalog: seeded with known MCP servers, optionally loaded from
  a YAML/JSON file. Used in development and tests.
- HttpCatalog: asks a remote registry over HTTP.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol
import logging

import httpx
import yaml

from ..core.errors import UpstreamFailure, UpstreamTimeout
from ..core.types import CatalogFilter, ProviderRecord, ToolDescriptor

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    """Read-only provider catalog."""

    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        ...


def matches_filter(provider: ProviderRecord, catalog_filter: CatalogFilter) -> bool:
    """True if any capability or query term appears in the provider's text."""
    if catalog_filter.require_verified and not provider.verified:
        return False

    haystack = " ".join([
        provider.display_name.lower(),
        provider.description.lower(),
        provider.tool_text,
        provider.tag_text,
    ])
    for term in (*catalog_filter.capability_terms, *catalog_filter.query_terms):
        if term and term.lower() in haystack:
            return True
    return False


class InMemoryCatalog:
    """
    Catalog of MCP servers held in memory.

    Catalog order is insertion order, which the ranking engine
    deliberately does not rely on.
    """

    def __init__(
        self,
        providers: Optional[Iterable[ProviderRecord]] = None,
        include_builtin: bool = False,
    ):
        self.providers: Dict[str, ProviderRecord] = {}
        if include_builtin:
            self._initialize_builtin_providers()
        for provider in providers or []:
            self.register(provider)

    def _initialize_builtin_providers(self):
        """Initialize with known MCP servers."""

        # Weather
        self.register(ProviderRecord(
            id="@smithery/weather",
            display_name="Weather Service",
            description="Current weather conditions and forecasts for any location",
            category="Weather",
            tags=frozenset({"weather", "forecast", "location"}),
            tools=(
                ToolDescriptor("get_current_weather", "Current weather conditions for a location"),
                ToolDescriptor("get_forecast", "Multi-day weather forecast"),
                ToolDescriptor("geocode_location", "Resolve a place name to coordinates"),
            ),
            verified=True,
            usage_count=12500,
            author="smithery",
        ))

        # Crypto prices
        self.register(ProviderRecord(
            id="@coincap/crypto-prices",
            display_name="Crypto Prices",
            description="Real-time cryptocurrency prices and crypto exchange rate data",
            category="Finance",
            tags=frozenset({"crypto", "bitcoin", "market"}),
            tools=(
                ToolDescriptor("get_crypto_price", "Current price for a crypto asset"),
                ToolDescriptor("get_market_data", "Market cap and 24h volume"),
            ),
            verified=True,
            usage_count=8400,
            author="coincap",
        ))

        # Stocks
        self.register(ProviderRecord(
            id="@alphavantage/stocks",
            display_name="Stock Market Data",
            description="Stock quotes, equity prices and market data by ticker",
            category="Finance",
            tags=frozenset({"stock", "equity", "market"}),
            tools=(
                ToolDescriptor("get_stock_quote", "Latest stock quote for a ticker"),
                ToolDescriptor("get_market_summary", "Market summary for an exchange"),
            ),
            verified=True,
            usage_count=5300,
            author="alphavantage",
        ))

        # Web search
        self.register(ProviderRecord(
            id="@exa/search",
            display_name="Exa Search",
            description="Search engine made for AIs with web content retrieval",
            category="Search",
            tags=frozenset({"search", "web", "find"}),
            tools=(
                ToolDescriptor("web_search", "Search the web"),
                ToolDescriptor("fetch_content", "Fetch the content of a page"),
            ),
            verified=True,
            usage_count=20100,
            author="exa",
        ))

        # Translation
        self.register(ProviderRecord(
            id="@deepl/translate",
            display_name="DeepL Translate",
            description="Text translation between languages with language detection",
            category="Language",
            tags=frozenset({"translate", "language"}),
            tools=(
                ToolDescriptor("translate_text", "Translate text to a target language"),
                ToolDescriptor("detect_language", "Detect the language of a text"),
            ),
            verified=True,
            usage_count=3900,
            author="deepl",
        ))

        # Food delivery
        self.register(ProviderRecord(
            id="@ubereats/delivery",
            display_name="Food Delivery",
            description="Restaurant search and food ordering with delivery",
            category="Commerce",
            tags=frozenset({"food", "delivery", "restaurant"}),
            tools=(
                ToolDescriptor("search_restaurants", "Find restaurants offering delivery near a location"),
                ToolDescriptor("place_order", "Order food from a restaurant"),
            ),
            verified=True,
            usage_count=1200,
            author="ubereats",
        ))

        # Flights
        self.register(ProviderRecord(
            id="@skyscanner/flights",
            display_name="Flight Search",
            description="Flight search and airfare comparison",
            category="Travel",
            tags=frozenset({"flight", "travel", "airline"}),
            tools=(
                ToolDescriptor("search_flights", "Search flights between two airports"),
            ),
            verified=False,
            usage_count=640,
            author="community",
        ))

    def register(self, provider: ProviderRecord):
        """Register (or replace) a provider."""
        self.providers[provider.id] = provider

    def get(self, provider_id: str) -> Optional[ProviderRecord]:
        """Get a provider by id."""
        return self.providers.get(provider_id)

    def list_all(self) -> List[ProviderRecord]:
        """List all registered providers."""
        return list(self.providers.values())

    def get_by_category(self, category: str) -> List[ProviderRecord]:
        """Get all providers in a category (case-insensitive)."""
        wanted = category.lower()
        return [p for p in self.providers.values() if p.category.lower() == wanted]

    def __len__(self) -> int:
        return len(self.providers)

    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        return [p for p in self.providers.values() if matches_filter(p, catalog_filter)]

    @classmethod
    def load_from_file(cls, path: str, include_builtin: bool = False) -> "InMemoryCatalog":
        """
        Load providers from a YAML or JSON file.

        The file holds either a list of provider rows or a mapping with a
        `providers` key.
        """
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or []
        rows = data.get("providers", []) if isinstance(data, dict) else data
        catalog = cls(include_builtin=include_builtin)
        for row in rows:
            catalog.register(ProviderRecord.from_dict(row))
        logger.info("Loaded %d providers from %s", len(rows), path)
        return catalog


class HttpCatalog:
    """
    Catalog backed by a remote registry.

    GET {base_url}/api/providers/search?category=..&terms=..&verified=..
    returning either a JSON list of rows or {"providers": [...]}.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _params(self, catalog_filter: CatalogFilter) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "terms": ",".join([*catalog_filter.capability_terms, *catalog_filter.query_terms]),
            "verified": "true" if catalog_filter.require_verified else "false",
        }
        if catalog_filter.category:
            params["category"] = catalog_filter.category
        return params

    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        url = f"{self.base_url}/api/providers/search"
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.get(url, params=self._params(catalog_filter))
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise UpstreamTimeout(f"Catalog query timed out: {e}") from e
            except httpx.HTTPError as e:
                raise UpstreamFailure(f"Catalog query failed: {e}") from e

        data = response.json()
        rows = data.get("providers", []) if isinstance(data, dict) else data
        providers = [ProviderRecord.from_dict(row) for row in rows]
        if catalog_filter.require_verified:
            providers = [p for p in providers if p.verified]
        return providers
