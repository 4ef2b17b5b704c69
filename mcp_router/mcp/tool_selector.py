"""
Tool Selector

Picks the operation to call on a chosen provider.

Every tool is scored against three keyword sets:
    intent keywords      name 10, description 5
    capability terms     name 8, description 4
    raw query terms      name 5, description 3

The highest score wins; ties keep the earlier declared tool. If nothing
scores, the provider's first tool is used. Providers without tools yield None.
"""

from typing import Dict, Iterable, List, Optional, Sequence
import logging

from ..core.types import ProviderRecord, ToolDescriptor

logger = logging.getLogger(__name__)


INTENT_TOOL_KEYWORDS: Dict[str, List[str]] = {
    "crypto_price_query": ["crypto", "exchange", "rate", "price", "bitcoin", "btc", "coin"],
    "web_search": ["search", "query", "find", "web", "lookup", "discover"],
    "weather_query": ["weather", "forecast", "temperature", "climate", "conditions"],
    "stock_price_query": ["stock", "quote", "price", "market", "ticker", "equity"],
    "news_query": ["news", "article", "headline", "current", "latest"],
    "translation": ["translate", "language", "convert", "translation"],
    "image_search": ["image", "picture", "photo", "visual"],
    "food_delivery": ["food", "restaurant", "delivery", "order"],
    "flight_booking": ["flight", "airline", "airfare"],
    "hotel_booking": ["hotel", "room", "booking"],
}

# Words that say nothing about the operation when they appear in an intent name
GENERIC_INTENT_WORDS = {"query", "get", "fetch", "find", "search"}


def keywords_for_intent(intent: str, table: Optional[Dict[str, List[str]]] = None) -> List[str]:
    """Keywords for an intent, derived from its name when it is not in the table."""
    table = INTENT_TOOL_KEYWORDS if table is None else table
    if intent in table:
        return list(table[intent])
    return [
        word for word in intent.lower().split("_")
        if len(word) > 2 and word not in GENERIC_INTENT_WORDS
    ]


class ToolSelector:
    """Chooses the best tool exposed by a provider."""

    def __init__(self, keyword_table: Optional[Dict[str, List[str]]] = None):
        self.keyword_table = INTENT_TOOL_KEYWORDS if keyword_table is None else keyword_table

    def select_tool(
        self,
        provider: ProviderRecord,
        intent: str,
        capabilities: Iterable[str],
        query_terms: Sequence[str] = (),
    ) -> Optional[ToolDescriptor]:
        if not provider.tools:
            return None

        keywords = keywords_for_intent(intent, self.keyword_table)
        capabilities = [c.lower() for c in capabilities if c]
        query_terms = [t.lower() for t in query_terms if t]

        best_tool = None
        best_score = 0.0
        for tool in provider.tools:
            score = self.score_tool(tool, keywords, capabilities, query_terms)
            if score > best_score:
                best_score = score
                best_tool = tool

        if best_tool is None:
            logger.debug(
                "No tool of %s matched intent=%s, using first tool", provider.id, intent
            )
            return provider.tools[0]
        return best_tool

    def score_tool(
        self,
        tool: ToolDescriptor,
        keywords: Sequence[str],
        capabilities: Sequence[str],
        query_terms: Sequence[str],
    ) -> float:
        name = tool.name.lower()
        description = tool.description.lower()
        score = 0.0

        for keyword in keywords:
            if keyword in name:
                score += 10
            if keyword in description:
                score += 5

        for cap in capabilities:
            if cap in name:
                score += 8
            if cap in description:
                score += 4

        for term in query_terms:
            if term in name:
                score += 5
            if term in description:
                score += 3

        return score
