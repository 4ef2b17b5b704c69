"""
Response Cache

Memoizes successful routing outcomes by request fingerprint.

- An entry younger than the TTL is a hit; older entries read as absent even
  before they are physically removed.
- Removal is opportunistic: when a put pushes the entry count over
  `max_entries`, every expired entry is swept. If the cache is still over
  the bound, the oldest entries go until it fits.
- All access goes through one lock; the clock is injectable for tests.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
import asyncio
import copy
import hashlib
import json
import logging
import threading
import time

from ..core.types import ParsedRequest

logger = logging.getLogger(__name__)


def fingerprint(parsed: ParsedRequest, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Deterministic cache key for a parsed request.

    Covers intent, normalized text, the capability set, the category and
    the explicit invocation params. Entities are covered when they were
    supplied by the caller (structured input); free-text entities follow
    from the text. Never arrival time or request ids.
    """
    material: Dict[str, Any] = {
        "intent": parsed.intent,
        "capabilities": sorted(set(parsed.capabilities)),
        "category": parsed.category,
    }
    if parsed.normalized_text:
        material["text"] = parsed.normalized_text
    if parsed.structured or not parsed.normalized_text:
        material["entities"] = dict(sorted(parsed.entities.items()))
    if params:
        material["params"] = params

    encoded = json.dumps(material, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """A memoized routing outcome."""
    key: str
    payload: Dict[str, Any]
    created_at: float


@dataclass
class CacheHit:
    """What a successful lookup returns."""
    payload: Dict[str, Any]
    age_seconds: float

    @property
    def age_ms(self) -> int:
        return int(self.age_seconds * 1000)


class ResponseCache:
    """TTL cache with a soft size bound."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[CacheHit]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            age = self._clock() - entry.created_at
            if age >= self.ttl_seconds:
                self._misses += 1
                return None

            self._hits += 1
            return CacheHit(payload=copy.deepcopy(entry.payload), age_seconds=age)

    def put(self, key: str, payload: Dict[str, Any]):
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                payload=copy.deepcopy(payload),
                created_at=self._clock(),
            )
            if len(self._entries) > self.max_entries:
                self._sweep()

    def evict(self, key: Optional[str] = None) -> int:
        """
        Remove one entry, or every expired entry when no key is given.

        Returns the number of entries removed.
        """
        with self._lock:
            if key is not None:
                removed = 1 if self._entries.pop(key, None) is not None else 0
                self._evictions += removed
                return removed
            return self._remove_expired()

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": round(self._hits / lookups, 3) if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep(self):
        # Caller holds the lock
        removed = self._remove_expired()
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries.values(), key=lambda e: e.created_at)[:overflow]
            for entry in oldest:
                del self._entries[entry.key]
            self._evictions += overflow
            removed += overflow
        logger.debug("Cache sweep removed %d entries, %d left", removed, len(self._entries))

    def _remove_expired(self) -> int:
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if now - entry.created_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        self._evictions += len(expired)
        return len(expired)


class SingleFlight:
    """
    Collapses concurrent calls with the same key into one.

    The first caller starts the work; callers arriving while it runs await the
    same task. The key is released as soon as the task finishes.
    """

    def __init__(self):
        self._inflight: Dict[str, asyncio.Task] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Tuple[Any, bool]:
        """Run `fn` once per key. Returns (result, shared)."""
        task = self._inflight.get(key)
        shared = task is not None
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._release(key, _t))
        return await asyncio.shield(task), shared

    def _release(self, key: str, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def __len__(self) -> int:
        return len(self._inflight)
