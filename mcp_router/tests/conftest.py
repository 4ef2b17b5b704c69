"""Shared fixtures for router tests."""

import asyncio
from typing import List

import pytest

from mcp_router.core.config import Config
from mcp_router.core.engine import RoutingEngine
from mcp_router.core.types import CatalogFilter, ProviderRecord, ToolDescriptor
from mcp_router.mcp.invoker import MockInvoker
from mcp_router.mcp.registry import InMemoryCatalog
from mcp_router.state.response_cache import ResponseCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class StaticCatalog:
    """Returns the same providers for every query and records the filters."""

    def __init__(self, providers: List[ProviderRecord]):
        self.providers = list(providers)
        self.filters: List[CatalogFilter] = []

    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        self.filters.append(catalog_filter)
        return list(self.providers)


class SlowCatalog:
    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        await asyncio.sleep(1.0)
        return []


class FailingCatalog:
    async def query(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        raise RuntimeError("registry unreachable")


class CountingInvoker(MockInvoker):
    """Mock invoker that counts calls and can be slowed down."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = 0

    async def invoke(self, provider, tool, params):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().invoke(provider, tool, params)


class BrokenInvoker:
    async def invoke(self, provider, tool, params):
        raise ConnectionError("provider refused connection")


def make_provider(
    provider_id: str,
    name: str,
    description: str = "",
    category: str = "",
    tools=(("run", ""),),
    verified: bool = True,
    usage_count: int = 0,
    tags=(),
) -> ProviderRecord:
    return ProviderRecord(
        id=provider_id,
        display_name=name,
        description=description,
        category=category,
        tags=frozenset(tags),
        tools=tuple(ToolDescriptor(n, d) for n, d in tools),
        verified=verified,
        usage_count=usage_count,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def builtin_catalog():
    return InMemoryCatalog(include_builtin=True)


@pytest.fixture
def engine(builtin_catalog, clock):
    """Engine over the built-in catalog with a mock invoker and a fake clock."""
    return RoutingEngine(
        config=Config(),
        catalog=builtin_catalog,
        invoker=MockInvoker(),
        cache=ResponseCache(clock=clock),
    )
