"""
Entity Extractor

Pulls structured fields out of query text: a location phrase, a known
cryptocurrency and a stock-ticker-shaped token. Each extractor is
independent and best-effort; a miss simply leaves the key out.

Ticker detection and multi-word place names depend on letter case, so the
extractor is fed the trimmed original text rather than the lower-cased one.
Locations only come from "in"/"at" phrases.
"""

from typing import Dict, List, Optional, Pattern
import re


LOCATION_PATTERNS: List[Pattern[str]] = [
    # "weather in Seoul", "hotels in New York"
    re.compile(r"\b(?i:in)\s+([a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)"),
    # "restaurants at Union Square"
    re.compile(r"\b(?i:at)\s+([a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)"),
]
# A bare capitalized word is not taken as a location: "Bitcoin", "Spanish"
# and "Python" are all capitalized without being places.

CRYPTO_PATTERN = re.compile(r"\b(bitcoin|btc|ethereum|eth|dogecoin|doge)\b", re.IGNORECASE)

TICKER_PATTERN = re.compile(r"\b([A-Z]{2,5})\b")

CRYPTO_SYMBOLS = {"BTC", "ETH", "DOGE"}


class EntityExtractor:
    """Independent, best-effort entity extractors."""

    def extract(self, text: str) -> Dict[str, str]:
        entities: Dict[str, str] = {}
        if not text:
            return entities

        location = self.extract_location(text)
        if location:
            entities["location"] = location

        crypto = self.extract_cryptocurrency(text)
        if crypto:
            entities["cryptocurrency"] = crypto

        ticker = self.extract_stock_symbol(text)
        if ticker:
            entities["stock_symbol"] = ticker

        return entities

    @staticmethod
    def extract_location(text: str) -> Optional[str]:
        for pattern in LOCATION_PATTERNS:
            match = pattern.search(text)
            if match:
                value = match.group(1).strip()
                if value:
                    return value
        return None

    @staticmethod
    def extract_cryptocurrency(text: str) -> Optional[str]:
        match = CRYPTO_PATTERN.search(text)
        return match.group(1).lower() if match else None

    @staticmethod
    def extract_stock_symbol(text: str) -> Optional[str]:
        for match in TICKER_PATTERN.finditer(text):
            symbol = match.group(1)
            if symbol not in CRYPTO_SYMBOLS:
                return symbol
        return None
