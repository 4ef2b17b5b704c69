"""
Fallback Chain

Sequential search for a provider and tool:

1. Rank with verification required (when asked). If nothing comes back,
   rank once more with verification relaxed. Still nothing: NoCandidateFound.
2. Walk the ranked list in order, at most `max_candidates` deep, and run the
   tool selector on each provider. The first provider with a tool wins.
3. If every attempted provider comes up empty: NoMatchingTool, listing the
   providers that were evaluated.

No speculative parallel attempts; one candidate at a time.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging

from ..mcp.ranking import CandidateRanker, RequestTerms
from ..mcp.tool_selector import ToolSelector
from .config import RankingConfig
from .errors import NoCandidateFound, NoMatchingTool
from .types import ParsedRequest, ScoredCandidate, ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Outcome of a successful walk of the chain."""
    candidate: ScoredCandidate
    tool: ToolDescriptor
    alternates: List[ScoredCandidate] = field(default_factory=list)
    evaluated: List[str] = field(default_factory=list)
    ranked: List[ScoredCandidate] = field(default_factory=list)
    relaxed: bool = False


class FallbackChain:
    """Rank, relax, then walk candidates until one exposes a tool."""

    def __init__(
        self,
        ranker: CandidateRanker,
        selector: Optional[ToolSelector] = None,
        config: Optional[RankingConfig] = None,
    ):
        self.ranker = ranker
        self.selector = selector or ToolSelector()
        self.config = config or RankingConfig()

    async def rank_with_relaxation(
        self,
        parsed: ParsedRequest,
        terms: RequestTerms,
        require_verified: bool,
    ) -> Tuple[List[ScoredCandidate], bool]:
        """
        Ranked candidates and whether verification had to be relaxed.

        Raises NoCandidateFound when the relaxed ranking is empty too.
        """
        ranked = await self.ranker.rank(parsed, require_verified, terms)
        if ranked:
            return ranked, False

        if require_verified:
            logger.info(
                "No verified providers for intent=%s, retrying without verification",
                parsed.intent,
            )
            ranked = await self.ranker.rank(parsed, False, terms)
            if ranked:
                return ranked, True

        raise NoCandidateFound()

    async def select(
        self,
        parsed: ParsedRequest,
        terms: RequestTerms,
        require_verified: bool,
    ) -> Selection:
        ranked, relaxed = await self.rank_with_relaxation(parsed, terms, require_verified)

        evaluated: List[str] = []
        limit = max(1, self.config.max_candidates)
        for index, candidate in enumerate(ranked[:limit]):
            evaluated.append(candidate.provider.display_name)
            tool = self.selector.select_tool(
                candidate.provider,
                parsed.intent,
                parsed.capabilities,
                terms.raw_terms,
            )
            if tool is None:
                logger.debug("Provider %s exposes no tools, advancing", candidate.provider.id)
                continue

            candidate.matched_tool = tool
            start = index + 1
            alternates = ranked[start:start + self.config.max_alternates]
            return Selection(
                candidate=candidate,
                tool=tool,
                alternates=alternates,
                evaluated=evaluated,
                ranked=ranked,
                relaxed=relaxed,
            )

        raise NoMatchingTool(evaluated)
