"""
Semantic Expander

Expands query terms and capability tags with static synonym tables.

Downstream matching is plain substring matching, so the expanded set, not
the raw input, is what gets scored. Each table is bidirectional: groups that
share a term are merged when the table is built, so every term maps to the
full closed group and expansion is idempotent.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set


QUERY_SYNONYM_GROUPS: List[List[str]] = [
    ["bitcoin", "btc", "crypto", "cryptocurrency"],
    ["ethereum", "eth", "ether"],
    ["weather", "forecast", "temperature", "climate", "conditions"],
    ["stock", "equity", "shares", "ticker"],
    ["search", "find", "query", "lookup", "discover"],
    ["price", "cost", "value", "rate", "quote"],
    ["translate", "translation", "language"],
    ["news", "headline", "article"],
    ["flight", "airline", "airfare"],
    ["hotel", "lodging", "accommodation"],
]

CAPABILITY_SYNONYM_GROUPS: List[List[str]] = [
    ["weather_lookup", "weather", "forecast"],
    ["location_search", "geocoding", "location"],
    ["crypto_price", "crypto", "cryptocurrency", "coin_price"],
    ["market_data", "market", "quote"],
    ["stock_price", "stock", "ticker"],
    ["web_search", "search", "lookup"],
    ["content_retrieval", "fetch", "scrape"],
    ["text_translation", "translate", "translation"],
    ["language_detection", "detect_language"],
    ["food_ordering", "food", "restaurant"],
    ["delivery_search", "delivery"],
    ["flight_search", "flight"],
    ["hotel_search", "hotel"],
]

# Intent keywords seeded into the query terms before synonym expansion
INTENT_TERMS: Dict[str, List[str]] = {
    "crypto_price_query": ["crypto", "exchange", "rate"],
    "web_search": ["search", "find", "web"],
    "weather_query": ["weather", "forecast", "temperature"],
    "stock_price_query": ["stock", "market", "quote"],
    "translation": ["translate", "language"],
    "food_delivery": ["food", "delivery"],
}


class SynonymTable:
    """A closed, bidirectional synonym table."""

    def __init__(self, groups: Iterable[Sequence[str]]):
        parent: Dict[str, str] = {}

        def find(term: str) -> str:
            while parent[term] != term:
                parent[term] = parent[parent[term]]
                term = parent[term]
            return term

        for group in groups:
            members = [t.lower() for t in group if t]
            for term in members:
                parent.setdefault(term, term)
            for term in members[1:]:
                root_a, root_b = find(members[0]), find(term)
                if root_a != root_b:
                    parent[root_b] = root_a

        components: Dict[str, Set[str]] = {}
        for term in parent:
            components.setdefault(find(term), set()).add(term)

        self._index: Dict[str, frozenset] = {}
        for members in components.values():
            closed = frozenset(members)
            for term in members:
                self._index[term] = closed

    def synonyms(self, term: str) -> frozenset:
        return self._index.get(term.lower(), frozenset())

    def expand(self, terms: Iterable[str]) -> Set[str]:
        expanded: Set[str] = set()
        for term in terms:
            if not term:
                continue
            lower = term.lower()
            expanded.add(lower)
            expanded.update(self._index.get(lower, ()))
        return expanded

    def __contains__(self, term: str) -> bool:
        return term.lower() in self._index


class SemanticExpander:
    """Query-term and capability-tag expansion."""

    def __init__(
        self,
        query_groups: Optional[Iterable[Sequence[str]]] = None,
        capability_groups: Optional[Iterable[Sequence[str]]] = None,
        intent_terms: Optional[Dict[str, List[str]]] = None,
    ):
        self.query_table = SynonymTable(
            query_groups if query_groups is not None else QUERY_SYNONYM_GROUPS
        )
        self.capability_table = SynonymTable(
            capability_groups if capability_groups is not None else CAPABILITY_SYNONYM_GROUPS
        )
        self.intent_terms = intent_terms if intent_terms is not None else INTENT_TERMS

    def expand(self, terms: Iterable[str]) -> Set[str]:
        """Expand free-text query terms."""
        return self.query_table.expand(terms)

    def expand_capabilities(self, capabilities: Iterable[str]) -> Set[str]:
        """Expand capability tags."""
        return self.capability_table.expand(capabilities)

    def expand_query(self, terms: Iterable[str], intent: Optional[str] = None) -> Set[str]:
        """Seed query terms with the intent's keywords, then expand."""
        seeded = list(terms)
        if intent:
            seeded.extend(self.intent_terms.get(intent, []))
        return self.expand(seeded)
