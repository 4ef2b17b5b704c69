"""
Capability Mapper & Strategy Selector

Static tables from intent to:
- required capability tags
- broad provider category
- execution strategy
"""

from typing import Dict, List, Optional, Set, Tuple

from ..core.types import StrategyKind


GENERAL_CAPABILITY = "general"
GENERAL_CATEGORY = "General"

CAPABILITY_MAP: Dict[str, List[str]] = {
    "weather_query": ["weather_lookup", "location_search"],
    "crypto_price_query": ["crypto_price", "market_data"],
    "stock_price_query": ["stock_price", "market_data"],
    "web_search": ["web_search", "content_retrieval"],
    "food_delivery": ["food_ordering", "delivery_search", "location_search"],
    "flight_booking": ["flight_search", "location_search"],
    "hotel_booking": ["hotel_search", "location_search"],
    "translation": ["text_translation", "language_detection"],
}

CATEGORY_MAP: Dict[str, str] = {
    "weather_query": "Weather",
    "crypto_price_query": "Finance",
    "stock_price_query": "Finance",
    "web_search": "Search",
    "food_delivery": "Commerce",
    "flight_booking": "Travel",
    "hotel_booking": "Travel",
    "translation": "Language",
}

# Informational intents answered by the single best provider
DIRECT_EXECUTION: Set[str] = {
    "weather_query",
    "crypto_price_query",
    "stock_price_query",
    "translation",
    "web_search",
}

# Multi-step flows where the user picks the provider
PRESENT_OPTIONS: Set[str] = {
    "food_delivery",
    "flight_booking",
    "hotel_booking",
    "crypto_trading",
}


class CapabilityMapper:
    """Intent -> capabilities, category and strategy."""

    def __init__(
        self,
        capability_map: Optional[Dict[str, List[str]]] = None,
        category_map: Optional[Dict[str, str]] = None,
        direct_execution: Optional[Set[str]] = None,
        present_options: Optional[Set[str]] = None,
    ):
        self.capability_map = capability_map if capability_map is not None else CAPABILITY_MAP
        self.category_map = category_map if category_map is not None else CATEGORY_MAP
        self.direct_execution = direct_execution if direct_execution is not None else DIRECT_EXECUTION
        self.present_options = present_options if present_options is not None else PRESENT_OPTIONS

    def map_capabilities(self, intent: str) -> Tuple[str, ...]:
        """Ordered capability tags for an intent; unknown intents get `general`."""
        return tuple(self.capability_map.get(intent, [GENERAL_CAPABILITY]))

    def classify_category(self, intent: str) -> str:
        return self.category_map.get(intent, GENERAL_CATEGORY)

    def select_strategy(self, intent: str) -> StrategyKind:
        if intent in self.direct_execution:
            return StrategyKind.DIRECT_EXECUTION
        if intent in self.present_options:
            return StrategyKind.PRESENT_OPTIONS
        return StrategyKind.FALLBACK
