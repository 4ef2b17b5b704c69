"""
Provider Invoker

Calls the selected tool on the selected provider. The router treats this as
an opaque collaborator:

    invoke(provider, tool, params) -> result (dict)

Two implementations, chosen once when the engine is built:
- MockInvoker: canned per-intent results for development and tests.
- HttpInvoker: JSON-RPC `tools/call` against the provider's endpoint.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Protocol
import itertools
import logging

import httpx

from ..core.config import ExecutionConfig
from ..core.errors import UpstreamFailure, UpstreamTimeout
from ..core.types import ProviderRecord, ToolDescriptor

logger = logging.getLogger(__name__)


class Invoker(Protocol):
    """Executes one tool call."""

    async def invoke(
        self,
        provider: ProviderRecord,
        tool: ToolDescriptor,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        ...


class MockInvoker:
    """Returns canned results keyed by intent. Never fails."""

    async def invoke(
        self,
        provider: ProviderRecord,
        tool: ToolDescriptor,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self.mock_result(params.get("intent", ""), params)

    def mock_result(self, intent: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = params.get("query") or ""

        if intent == "crypto_price_query":
            return {
                "symbol": params.get("cryptocurrency", "BTC"),
                "price": "$43,250",
                "change_24h": "+2.3%",
                "volume_24h": "$28.5B",
            }
        if intent == "web_search":
            return {
                "query": query,
                "results": [
                    {
                        "title": f"{query} - Top Result",
                        "url": "https://example.com",
                        "snippet": "Most relevant content...",
                    }
                ],
            }
        if intent == "weather_query":
            return {
                "location": params.get("location") or query or "Current Location",
                "temperature": "72°F",
                "condition": "Partly Cloudy",
                "humidity": "45%",
            }
        if intent == "stock_price_query":
            return {
                "symbol": params.get("stock_symbol") or "AAPL",
                "price": "$150.25",
                "change": "-0.5%",
                "volume": "52.3M",
            }
        if intent == "translation":
            return {
                "source_text": query,
                "translated_text": f"[translated] {query}",
                "detected_language": "en",
            }

        return {
            "answer": f"Processed: {query}",
            "timestamp": datetime.now().isoformat(),
        }


class HttpInvoker:
    """
    Invokes tools over HTTP.

    POSTs a JSON-RPC 2.0 request to the provider endpoint:
        {"jsonrpc": "2.0", "id": n, "method": "tools/call",
         "params": {"name": <tool>, "arguments": {...}}}
    """

    def __init__(
        self,
        timeout_seconds: float = 45.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.headers = headers or {}
        self._transport = transport
        self._ids = itertools.count(1)

    def build_payload(self, tool: ToolDescriptor, params: Dict[str, Any]) -> Dict[str, Any]:
        arguments = {k: v for k, v in params.items() if k != "intent"}
        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "tools/call",
            "params": {"name": tool.name, "arguments": arguments},
        }

    async def invoke(
        self,
        provider: ProviderRecord,
        tool: ToolDescriptor,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        if not provider.endpoint:
            raise UpstreamFailure(f"Provider {provider.id} has no endpoint")

        payload = self.build_payload(tool, params)
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    provider.endpoint,
                    json=payload,
                    headers=self.headers,
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise UpstreamTimeout(f"{provider.id}/{tool.name} timed out") from e
            except httpx.HTTPError as e:
                raise UpstreamFailure(f"{provider.id}/{tool.name} failed: {e}") from e

        data = response.json() if response.content else {}
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamFailure(f"{provider.id}/{tool.name} returned an error: {message}")

        result = data.get("result", data) if isinstance(data, dict) else data
        logger.debug("Invoked %s/%s", provider.id, tool.name)
        return result if isinstance(result, dict) else {"content": result}


def build_invoker(config: ExecutionConfig) -> Invoker:
    """Pick the invoker implementation for this process."""
    if config.invoker == "http":
        return HttpInvoker(timeout_seconds=config.timeout_seconds)
    return MockInvoker()
