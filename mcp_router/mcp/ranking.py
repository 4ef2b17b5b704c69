"""
Candidate Ranking Engine

Scores catalog providers against a parsed request with a weighted sum:

    category match      exact 10, fuzzy 5 (the larger one, never both)
    capability terms    3 per expanded capability term found in tool text
    query terms         per expanded term: name 5, description 3, tools 2, tags 1
    popularity          log10(usage_count + 1) * factor
    verification        fixed bonus for verified providers

Providers scoring <= 0 are dropped. Output is ordered by descending score,
ties broken by provider id, so catalog order never leaks into the result.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import asyncio
import logging
import math

from ..core.config import RankingConfig
from ..core.errors import RouterError, UpstreamFailure, UpstreamTimeout
from ..core.types import CatalogFilter, ParsedRequest, ProviderRecord, ScoredCandidate
from ..nlp.normalizer import tokenize
from ..nlp.semantic_expander import SemanticExpander
from .registry import Catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestTerms:
    """Terms derived from one parsed request."""
    raw_terms: Tuple[str, ...] = ()
    query_terms: Tuple[str, ...] = ()
    capability_terms: Tuple[str, ...] = ()


@dataclass
class ScoreBreakdown:
    """Per-component score, kept for debug output."""
    category: float = 0.0
    capabilities: float = 0.0
    terms: float = 0.0
    popularity: float = 0.0
    verified: float = 0.0
    matched_terms: List[str] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.category + self.capabilities + self.terms + self.popularity + self.verified


class CandidateRanker:
    """Scores and orders providers for one request."""

    def __init__(
        self,
        catalog: Catalog,
        expander: Optional[SemanticExpander] = None,
        config: Optional[RankingConfig] = None,
        timeout_seconds: float = 5.0,
    ):
        self.catalog = catalog
        self.expander = expander or SemanticExpander()
        self.config = config or RankingConfig()
        self.timeout_seconds = timeout_seconds

    def build_terms(self, parsed: ParsedRequest) -> RequestTerms:
        """Raw query terms plus their expanded query and capability sets."""
        if parsed.normalized_text:
            raw = tokenize(parsed.normalized_text)
        else:
            # Structured input without text: entity values stand in for the query
            raw = []
            for value in parsed.entities.values():
                for token in tokenize(str(value).lower()):
                    if token not in raw:
                        raw.append(token)

        query_terms = self.expander.expand_query(raw, parsed.intent)
        capability_terms = self.expander.expand_capabilities(parsed.capabilities)
        return RequestTerms(
            raw_terms=tuple(raw),
            query_terms=tuple(sorted(query_terms)),
            capability_terms=tuple(sorted(capability_terms)),
        )

    async def rank(
        self,
        parsed: ParsedRequest,
        require_verified: bool,
        terms: Optional[RequestTerms] = None,
    ) -> List[ScoredCandidate]:
        terms = terms or self.build_terms(parsed)
        catalog_filter = CatalogFilter(
            category=parsed.category or None,
            capability_terms=terms.capability_terms,
            query_terms=terms.query_terms,
            require_verified=require_verified,
        )

        providers = await self._query_catalog(catalog_filter)

        candidates: List[ScoredCandidate] = []
        seen = set()
        for provider in providers:
            if provider.id in seen:
                continue
            seen.add(provider.id)
            if require_verified and not provider.verified:
                continue
            score = self.score(provider, parsed.category, terms).total
            if score > 0:
                candidates.append(ScoredCandidate(provider=provider, score=score))

        candidates.sort(key=lambda c: (-c.score, c.provider.id))
        logger.debug(
            "Ranked %d/%d providers for intent=%s verified=%s",
            len(candidates), len(providers), parsed.intent, require_verified,
        )
        return candidates

    async def _query_catalog(self, catalog_filter: CatalogFilter) -> List[ProviderRecord]:
        try:
            return await asyncio.wait_for(
                self.catalog.query(catalog_filter), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(
                f"Catalog query exceeded {self.timeout_seconds}s"
            ) from e
        except RouterError:
            raise
        except Exception as e:
            raise UpstreamFailure(f"Catalog query failed: {e}") from e

    def score(
        self,
        provider: ProviderRecord,
        category: Optional[str],
        terms: RequestTerms,
    ) -> ScoreBreakdown:
        cfg = self.config
        breakdown = ScoreBreakdown()

        breakdown.category = self._category_score(provider.category, category)

        tool_text = provider.tool_text
        for cap in terms.capability_terms:
            if cap in tool_text:
                breakdown.capabilities += cfg.capability_tool_weight

        name = provider.display_name.lower()
        description = provider.description.lower()
        tag_text = provider.tag_text
        for term in terms.query_terms:
            term_score = 0.0
            if term in name:
                term_score += cfg.name_weight
            if term in description:
                term_score += cfg.description_weight
            if term in tool_text:
                term_score += cfg.tool_weight
            if term in tag_text:
                term_score += cfg.tag_weight
            if term_score:
                breakdown.matched_terms.append(term)
                breakdown.terms += term_score

        breakdown.popularity = math.log10(provider.usage_count + 1) * cfg.popularity_factor

        if provider.verified:
            breakdown.verified = cfg.verified_bonus

        return breakdown

    def _category_score(self, provider_category: str, category: Optional[str]) -> float:
        if not category or not provider_category:
            return 0.0
        wanted = category.lower()
        actual = provider_category.lower()
        if actual == wanted:
            return self.config.category_exact_weight
        if wanted in actual or actual in wanted:
            return self.config.category_fuzzy_weight
        return 0.0

    def explain(self, candidates: List[ScoredCandidate]) -> List[Dict[str, object]]:
        """Ranking table for debug output."""
        return [
            {
                "provider": c.provider.id,
                "name": c.provider.display_name,
                "score": round(c.score, 3),
                "verified": c.provider.verified,
            }
            for c in candidates
        ]
