"""Short-TTL memoization of circle suggestions.

Keyed by ``(user_id, contact_id)``. An entry is served verbatim while
``timer() - computed_at < ttl`` and it was scored in the requested mode;
otherwise the next caller recomputes and overwrites it.
The cache is bounded and evicts the least recently used entry when full.
Concurrent misses for the same key share one in-flight computation.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from .models import CircleSuggestion, ScoringMode

logger = structlog.get_logger()

CacheKey = tuple[str, str]


@dataclass
class _Entry:
    suggestion: CircleSuggestion
    computed_at: float


@dataclass
class _Pending:
    mode: ScoringMode | None
    future: asyncio.Future[CircleSuggestion]


class SuggestionCache:
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        maxsize: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._ttl = ttl_seconds
        self._maxsize = maxsize
        self._timer = timer
        self._data: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._inflight: dict[CacheKey, _Pending] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._data)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(
        self, user_id: str, contact_id: str, mode: ScoringMode | None = None
    ) -> CircleSuggestion | None:
        """Return a fresh cached suggestion, or None. Expired entries are dropped.

        With ``mode`` set, an entry scored in another mode counts as a miss.
        """
        key = (user_id, contact_id)
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._timer() - entry.computed_at >= self._ttl:
            del self._data[key]
            return None
        if mode is not None and entry.suggestion.mode != mode:
            return None
        self._data.move_to_end(key)
        return entry.suggestion

    def set(self, user_id: str, contact_id: str, suggestion: CircleSuggestion) -> None:
        key = (user_id, contact_id)
        if key in self._data:
            del self._data[key]
        elif len(self._data) >= self._maxsize:
            evicted, _ = self._data.popitem(last=False)
            self._evictions += 1
            logger.debug("suggestion_cache_evicted", user_id=evicted[0], contact_id=evicted[1])
        self._data[key] = _Entry(suggestion=suggestion, computed_at=self._timer())

    async def get_or_compute(
        self,
        user_id: str,
        contact_id: str,
        compute: Callable[[], Awaitable[CircleSuggestion]],
        mode: ScoringMode | None = None,
    ) -> CircleSuggestion:
        """Serve from cache, join an in-flight computation, or compute and store.

        Only results for the same ``mode`` are served or joined. A computation
        in another mode replaces the entry for the key.
        """
        cached = self.get(user_id, contact_id, mode)
        if cached is not None:
            self._hits += 1
            return cached

        key = (user_id, contact_id)
        pending = self._inflight.get(key)
        if pending is not None and pending.mode == mode:
            self._hits += 1
            return await asyncio.shield(pending.future)

        self._misses += 1
        future: asyncio.Future[CircleSuggestion] = asyncio.get_running_loop().create_future()
        mine = _Pending(mode=mode, future=future)
        self._inflight[key] = mine
        try:
            suggestion = await compute()
        except Exception as exc:
            future.set_exception(exc)
            # Joined callers re-raise it themselves; don't warn about an unread result.
            future.exception()
            raise
        else:
            # An invalidation during the computation means the result is already stale.
            if self._inflight.get(key) is mine:
                self.set(user_id, contact_id, suggestion)
            future.set_result(suggestion)
            return suggestion
        finally:
            if not future.done():
                future.cancel()
            if self._inflight.get(key) is mine:
                del self._inflight[key]

    def invalidate(self, user_id: str, contact_id: str) -> bool:
        key = (user_id, contact_id)
        self._inflight.pop(key, None)
        removed = self._data.pop(key, None) is not None
        if removed:
            logger.debug("suggestion_cache_invalidated", user_id=user_id, contact_id=contact_id)
        return removed

    def invalidate_many(self, user_id: str, contact_ids: Iterable[str]) -> int:
        return sum(1 for contact_id in contact_ids if self.invalidate(user_id, contact_id))

    def invalidate_user(self, user_id: str) -> int:
        keys = [key for key in self._data if key[0] == user_id]
        for key in keys:
            del self._data[key]
        for key in [key for key in self._inflight if key[0] == user_id]:
            del self._inflight[key]
        return len(keys)

    def clear(self) -> None:
        self._data.clear()
        self._inflight.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "entries": len(self._data),
            "maxsize": self._maxsize,
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": self._hits / total if total > 0 else 0.0,
        }
