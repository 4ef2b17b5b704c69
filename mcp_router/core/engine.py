"""
Routing Engine - the request pipeline

Connects every stage:
1. Parser - normalize, classify, extract, map (or take structured input as is)
2. Response Cache - short-circuit on a fresh fingerprint hit
3. Fallback Chain - rank (relaxing verification once), pick provider + tool
4. Invoker - run the tool (mock or real, fixed at construction)
5. Response - result plus routing metadata, or a structured error

Routing outcomes never raise out of `handle`. Failures come back as a
response with `success=False`, an error object and the elapsed time.
"""

from typing import Any, Dict, Optional
import asyncio
import copy
import logging
import time
import uuid

from ..mcp.invoker import Invoker, MockInvoker, build_invoker
from ..mcp.ranking import CandidateRanker, RequestTerms
from ..mcp.registry import Catalog, HttpCatalog, InMemoryCatalog
from ..mcp.tool_selector import ToolSelector
from ..nlp.parser import RequestParser
from ..nlp.semantic_expander import SemanticExpander
from ..state.audit_logger import AuditLogger
from ..state.response_cache import CacheHit, ResponseCache, SingleFlight, fingerprint
from .config import Config
from .errors import RouterError, UpstreamFailure, UpstreamTimeout
from .fallback import FallbackChain, Selection
from .types import ParsedRequest, RoutingRequest, RoutingResponse, StrategyKind

logger = logging.getLogger(__name__)


def _elapsed_ms(since: float) -> float:
    return round((time.perf_counter() - since) * 1000, 2)


class RoutingEngine:
    """
    The routing pipeline.

    Every collaborator can be injected; anything left out is built from
    the config.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        catalog: Optional[Catalog] = None,
        parser: Optional[RequestParser] = None,
        expander: Optional[SemanticExpander] = None,
        selector: Optional[ToolSelector] = None,
        invoker: Optional[Invoker] = None,
        cache: Optional[ResponseCache] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.config = config or Config()
        self.catalog = catalog if catalog is not None else InMemoryCatalog(include_builtin=True)
        self.parser = parser or RequestParser()
        self.expander = expander or SemanticExpander()
        self.ranker = CandidateRanker(
            self.catalog,
            self.expander,
            self.config.ranking,
            timeout_seconds=self.config.catalog.timeout_seconds,
        )
        self.selector = selector or ToolSelector()
        self.chain = FallbackChain(self.ranker, self.selector, self.config.ranking)
        self.invoker = invoker or build_invoker(self.config.execution)
        self.degraded_invoker = MockInvoker()
        # An empty cache is falsy (it has __len__), so test against None
        self.cache = cache if cache is not None else ResponseCache(
            ttl_seconds=self.config.cache.ttl_seconds,
            max_entries=self.config.cache.max_entries,
        )
        self.flight = SingleFlight() if self.config.cache.single_flight else None
        self.audit = audit

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def parse(self, request: RoutingRequest) -> Dict[str, Any]:
        """Parse stage only. Raises MalformedInput."""
        return self.parser.parse(request).to_summary()

    async def handle(self, request: RoutingRequest) -> RoutingResponse:
        """Route one request end to end."""
        start = time.perf_counter()
        request_id = uuid.uuid4().hex[:12]
        if self.audit:
            self.audit.log_request(request_id, request.query, request.is_structured)

        try:
            parsed = self.parser.parse(request)
        except RouterError as e:
            return self._failure(e, None, start, request_id)

        parse_ms = _elapsed_ms(start)
        summary = parsed.to_summary()
        if self.audit:
            self.audit.log_parse(request_id, summary)

        want_debug = request.return_debug_info or self.config.debug
        key = fingerprint(parsed, request.params)
        hit = self.cache.get(key)
        if hit is not None:
            return self._from_cache(hit, summary, key, start, request_id, want_debug, parse_ms)

        require_verified = (
            self.config.execution.require_verified
            if request.require_verified is None
            else bool(request.require_verified)
        )

        async def run() -> RoutingResponse:
            return await self._route(parsed, request, require_verified, want_debug, request_id)

        shared = False
        try:
            if self.flight is not None:
                flight_key = f"{key}:{int(require_verified)}:{int(want_debug)}"
                response, shared = await self.flight.do(flight_key, run)
                if shared:
                    response = copy.deepcopy(response)
            else:
                response = await run()
        except Exception as e:
            logger.exception("Unexpected routing error")
            return self._failure(RouterError(f"Internal routing error: {e}"), summary, start, request_id)

        # Only the request that did the work writes the cache
        if response.success and not shared and not response.metadata.get("degraded"):
            self.cache.put(key, self._cacheable(response))

        response.metadata["elapsed_ms"] = _elapsed_ms(start)
        if response.debug_info is not None:
            response.debug_info["timing"] = {
                "parse_ms": parse_ms,
                "route_ms": round(response.metadata["elapsed_ms"] - parse_ms, 2),
                "total_ms": response.metadata["elapsed_ms"],
            }
            response.debug_info["fingerprint"] = key
        return response

    def status(self) -> Dict[str, Any]:
        """Engine status for the status endpoint."""
        return {
            "catalog": type(self.catalog).__name__,
            "catalog_size": len(self.catalog) if hasattr(self.catalog, "__len__") else None,
            "invoker": type(self.invoker).__name__,
            "strict": self.config.execution.strict,
            "require_verified": self.config.execution.require_verified,
            "intents": self.parser.classifier.intents,
            "cache": self.cache.stats(),
            "single_flight": self.flight is not None,
            "environment": self.config.environment,
        }

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _route(
        self,
        parsed: ParsedRequest,
        request: RoutingRequest,
        require_verified: bool,
        want_debug: bool,
        request_id: str,
    ) -> RoutingResponse:
        start = time.perf_counter()
        summary = parsed.to_summary()
        terms = self.ranker.build_terms(parsed)
        trace: Dict[str, Any] = {}

        try:
            if parsed.strategy == StrategyKind.PRESENT_OPTIONS:
                response = await self._present_options(parsed, terms, require_verified, trace)
            else:
                response = await self._execute(parsed, request, terms, require_verified, trace, request_id)
        except (UpstreamTimeout, UpstreamFailure) as e:
            if self.config.execution.strict:
                return self._failure(e, summary, start, request_id, trace)
            response = await self._degraded(parsed, request, e, request_id)
        except RouterError as e:
            return self._failure(e, summary, start, request_id, trace)

        response.ranking = trace.get("ranking", [])
        if want_debug:
            response.debug_info = {
                "parse": summary,
                "terms": {
                    "raw": list(terms.raw_terms),
                    "query": list(terms.query_terms),
                    "capabilities": list(terms.capability_terms),
                },
                "ranking": trace.get("ranking", []),
                "evaluated": trace.get("evaluated", []),
            }
        return response

    async def _execute(
        self,
        parsed: ParsedRequest,
        request: RoutingRequest,
        terms: RequestTerms,
        require_verified: bool,
        trace: Dict[str, Any],
        request_id: str,
    ) -> RoutingResponse:
        """direct_execution and fallback strategies."""
        try:
            selection = await self.chain.select(parsed, terms, require_verified)
        except RouterError as e:
            trace["evaluated"] = list(e.details.get("evaluated_providers", []))
            raise

        trace["ranking"] = self.ranker.explain(selection.ranked)
        trace["evaluated"] = selection.evaluated
        if self.audit:
            self.audit.log_ranking(request_id, trace["ranking"], selection.relaxed)

        provider = selection.candidate.provider
        if self.audit:
            self.audit.log_selection(
                request_id, provider.id, selection.tool.name, selection.candidate.confidence
            )
        logger.info(
            "Routing intent=%s to %s/%s (score %.2f)",
            parsed.intent, provider.id, selection.tool.name, selection.candidate.score,
        )

        metadata = self._selection_metadata(parsed, selection)
        params = self._invoke_params(parsed, request)
        try:
            result = await self._invoke(selection, params)
        except (UpstreamTimeout, UpstreamFailure) as e:
            if self.config.execution.strict:
                raise
            result = await self.degraded_invoker.invoke(provider, selection.tool, params)
            metadata.update(self._degraded_metadata(e, request_id))

        return RoutingResponse(
            success=True,
            parsed=parsed.to_summary(),
            result=result,
            metadata=metadata,
        )

    async def _present_options(
        self,
        parsed: ParsedRequest,
        terms: RequestTerms,
        require_verified: bool,
        trace: Dict[str, Any],
    ) -> RoutingResponse:
        """Rank, but let the caller choose; nothing is invoked."""
        ranked, relaxed = await self.chain.rank_with_relaxation(parsed, terms, require_verified)
        trace["ranking"] = self.ranker.explain(ranked)

        options = [
            {
                "id": c.provider.id,
                "name": c.provider.display_name,
                "description": c.provider.description,
                "category": c.provider.category,
                "usage_count": c.provider.usage_count,
                "verified": c.provider.verified,
                "score": round(c.score, 3),
            }
            for c in ranked[:self.config.ranking.options_limit]
        ]

        return RoutingResponse(
            success=True,
            parsed=parsed.to_summary(),
            result={
                "options": options,
                "message": f"Found {len(options)} providers for {parsed.intent}",
                "next_step": "Choose a provider from options to continue",
            },
            metadata={
                "strategy": parsed.strategy.value,
                "chosen_provider": None,
                "chosen_tool": None,
                "confidence": parsed.confidence,
                "alternates": [],
                "verification_relaxed": relaxed,
                "cached": False,
            },
        )

    async def _degraded(
        self,
        parsed: ParsedRequest,
        request: RoutingRequest,
        error: RouterError,
        request_id: str,
    ) -> RoutingResponse:
        """Mock result when the catalog itself is unavailable."""
        params = self._invoke_params(parsed, request)
        result = self.degraded_invoker.mock_result(parsed.intent, params)
        metadata = {
            "strategy": parsed.strategy.value,
            "chosen_provider": None,
            "chosen_tool": None,
            "confidence": parsed.confidence,
            "alternates": [],
            "cached": False,
        }
        metadata.update(self._degraded_metadata(error, request_id))
        return RoutingResponse(
            success=True,
            parsed=parsed.to_summary(),
            result=result,
            metadata=metadata,
        )

    async def _invoke(self, selection: Selection, params: Dict[str, Any]) -> Dict[str, Any]:
        timeout = self.config.execution.timeout_seconds
        try:
            return await asyncio.wait_for(
                self.invoker.invoke(selection.candidate.provider, selection.tool, params),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(
                f"{selection.candidate.provider.id}/{selection.tool.name} exceeded {timeout}s"
            ) from e
        except RouterError:
            raise
        except Exception as e:
            raise UpstreamFailure(
                f"{selection.candidate.provider.id}/{selection.tool.name} failed: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Response helpers
    # ------------------------------------------------------------------

    def _selection_metadata(self, parsed: ParsedRequest, selection: Selection) -> Dict[str, Any]:
        provider = selection.candidate.provider
        return {
            "strategy": parsed.strategy.value,
            "chosen_provider": provider.id,
            "chosen_provider_name": provider.display_name,
            "chosen_tool": selection.tool.name,
            "confidence": parsed.confidence,
            "provider_confidence": selection.candidate.confidence,
            "alternates": [
                {
                    "provider": alt.provider.id,
                    "name": alt.provider.display_name,
                    "confidence": alt.confidence,
                }
                for alt in selection.alternates
            ],
            "verification_relaxed": selection.relaxed,
            "cached": False,
        }

    def _degraded_metadata(self, error: RouterError, request_id: str) -> Dict[str, Any]:
        logger.warning("Upstream error, returning degraded result: %s", error.message)
        if self.audit:
            self.audit.log_upstream_error(request_id, error.code, error.message, degraded=True)
        return {
            "degraded": True,
            "upstream_error": {"code": error.code, "message": error.message},
        }

    def _invoke_params(self, parsed: ParsedRequest, request: RoutingRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(parsed.entities)
        params.update(request.params or {})
        params["intent"] = parsed.intent
        params["query"] = request.query if request.has_text else ""
        return params

    def _cacheable(self, response: RoutingResponse) -> Dict[str, Any]:
        return {
            "result": response.result,
            "ranking": response.ranking,
            "metadata": {
                k: v for k, v in response.metadata.items()
                if k not in ("elapsed_ms", "cached", "cache_age_ms")
            },
        }

    def _from_cache(
        self,
        hit: CacheHit,
        summary: Dict[str, Any],
        key: str,
        start: float,
        request_id: str,
        want_debug: bool = False,
        parse_ms: float = 0.0,
    ) -> RoutingResponse:
        if self.audit:
            self.audit.log_cache_hit(request_id, key, hit.age_ms)
        logger.debug("Cache hit %s (age %dms)", key[:12], hit.age_ms)

        metadata = dict(hit.payload.get("metadata", {}))
        metadata["cached"] = True
        metadata["cache_age_ms"] = hit.age_ms
        metadata["elapsed_ms"] = _elapsed_ms(start)

        debug_info = None
        if want_debug:
            # Nothing was ranked on this request; the ranking shown is the one cached
            debug_info = {
                "parse": summary,
                "cached": True,
                "cache_age_ms": hit.age_ms,
                "ranking": hit.payload.get("ranking", []),
                "fingerprint": key,
                "timing": {
                    "parse_ms": parse_ms,
                    "route_ms": 0.0,
                    "total_ms": metadata["elapsed_ms"],
                },
            }

        return RoutingResponse(
            success=True,
            parsed=summary,
            result=hit.payload.get("result"),
            metadata=metadata,
            debug_info=debug_info,
        )

    def _failure(
        self,
        error: RouterError,
        summary: Optional[Dict[str, Any]],
        start: float,
        request_id: str,
        trace: Optional[Dict[str, Any]] = None,
    ) -> RoutingResponse:
        if self.audit:
            self.audit.log_failure(request_id, error.code, error.message, error.details)
        logger.info("Routing failed: %s (%s)", error.code, error.message)

        metadata: Dict[str, Any] = {
            "strategy": summary["strategy"] if summary else None,
            "chosen_provider": None,
            "chosen_tool": None,
            "confidence": summary["confidence"] if summary else 0.0,
            "alternates": [],
            "cached": False,
            "elapsed_ms": _elapsed_ms(start),
        }
        if trace and trace.get("evaluated"):
            metadata["evaluated_providers"] = trace["evaluated"]
        return RoutingResponse(
            success=False,
            parsed=summary,
            metadata=metadata,
            error=error.to_dict(),
            status_code=error.status_code,
        )


def build_catalog(config: Config) -> Catalog:
    """Catalog implementation named by the config."""
    if config.catalog.source == "http":
        return HttpCatalog(
            config.catalog.base_url or "",
            timeout_seconds=config.catalog.timeout_seconds,
        )
    if config.catalog.path:
        return InMemoryCatalog.load_from_file(config.catalog.path, include_builtin=True)
    return InMemoryCatalog(include_builtin=True)


def build_engine(config: Optional[Config] = None) -> RoutingEngine:
    """Wire a RoutingEngine from configuration."""
    config = config or Config.load_from_env()
    audit = None
    if config.state.audit_enabled:
        audit = AuditLogger(config.state.audit_log_path)
    return RoutingEngine(config=config, catalog=build_catalog(config), audit=audit)


# Singleton
_engine: Optional[RoutingEngine] = None


def get_engine() -> RoutingEngine:
    """Get the singleton Routing Engine."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def set_engine(engine: Optional[RoutingEngine]):
    """Replace the singleton (tests, custom wiring)."""
    global _engine
    _engine = engine


async def route(query: str, **kwargs) -> Dict[str, Any]:
    """Convenience function to route a free-text query."""
    response = await get_engine().handle(RoutingRequest(query=query, **kwargs))
    return response.to_dict()
