"""
Intent Classifier

Maps normalized query text to an intent label.

Matching is first-match, not best-match: entries are evaluated in table
order, patterns within an entry in list order, and the first pattern found
anywhere in the text wins. Table order is the priority among overlapping
patterns (weather before generic search, and so on).
"""

from typing import List, Optional, Pattern, Sequence, Tuple
import re

from ..core.types import IntentLabel


FALLBACK_INTENT = "general_query"
FALLBACK_CONFIDENCE = 0.3


# (intent, patterns, confidence). Order matters.
INTENT_TABLE: List[Tuple[str, List[str], float]] = [
    ("weather_query", [
        r"weather\s+in\s+([a-z\s]+)",
        r"forecast.*?([a-z\s]+)",
        r"temperature.*?([a-z\s]+)",
        r"(current|today'?s?)\s+weather",
        r"how.*?(hot|cold|warm).*?is.*?it",
    ], 0.95),
    ("crypto_price_query", [
        r"(bitcoin|btc|ethereum|eth|crypto).*?price",
        r"price.*?(bitcoin|btc|ethereum|eth)",
        r"how.*?much.*?(bitcoin|btc|ethereum|eth)",
        r"(bitcoin|btc|ethereum|eth).*?(cost|value)",
    ], 0.95),
    ("stock_price_query", [
        r"stock.*?price.*?([a-z]{2,5})",
        r"([a-z]{2,5}).*?stock.*?price",
        r"share.*?price.*?([a-z]{2,5})",
    ], 0.90),
    ("web_search", [
        r"search.*?for\s+(.+)",
        r"find.*?about\s+(.+)",
        r"look.*?up\s+(.+)",
        r"google\s+(.+)",
    ], 0.85),
    ("food_delivery", [
        r"order.*?food",
        r"food.*?delivery",
        r"(pizza|burger|chinese|indian).*?(order|delivery)",
        r"hungry.*?(order|delivery)",
    ], 0.90),
    ("flight_booking", [
        r"book.*?flight",
        r"flights?\s+(?:from|to)\s+",
    ], 0.90),
    ("hotel_booking", [
        r"book.*?(hotel|room)",
        r"hotels?\s+(?:in|near)\s+",
    ], 0.90),
    ("translation", [
        r"translate.*?to\s+([a-z]+)",
        r"how.*?say.*?in\s+([a-z]+)",
        r"([a-z]+).*?translation",
    ], 0.95),
]


class IntentClassifier:
    """
    Ordered pattern table classifier.

    Confidence is static per intent; it is reported to callers but never
    used for ranking decisions.
    """

    def __init__(
        self,
        table: Optional[Sequence[Tuple[str, List[str], float]]] = None,
        fallback_intent: str = FALLBACK_INTENT,
        fallback_confidence: float = FALLBACK_CONFIDENCE,
    ):
        self.fallback_intent = fallback_intent
        self.fallback_confidence = fallback_confidence
        self._entries: List[Tuple[str, List[Pattern[str]], float]] = []
        for name, patterns, confidence in (table if table is not None else INTENT_TABLE):
            compiled = [re.compile(p, re.IGNORECASE) for p in patterns]
            self._entries.append((name, compiled, max(0.0, min(1.0, confidence))))

    @property
    def intents(self) -> List[str]:
        return [name for name, _, _ in self._entries]

    def classify(self, normalized_text: str) -> IntentLabel:
        """Return the first matching intent, or the low-confidence fallback."""
        if normalized_text:
            for name, patterns, confidence in self._entries:
                for pattern in patterns:
                    if pattern.search(normalized_text):
                        return IntentLabel(
                            name=name,
                            confidence=confidence,
                            matched_pattern=pattern.pattern,
                        )

        return IntentLabel(
            name=self.fallback_intent,
            confidence=self.fallback_confidence,
            matched_pattern="fallback",
        )
