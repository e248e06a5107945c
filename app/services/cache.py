# app/services/cache.py
from __future__ import annotations
import asyncio
import fnmatch
import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class DegradedRead(Exception):
    """A read that could only be answered with stale or fallback data."""

    def __init__(self, key: str, data: Any, cause: BaseException):
        super().__init__(f"{key}: {cause}")
        self.key = key
        self.data = data
        self.cause = cause

    def with_data(self, data: Any) -> "DegradedRead":
        return DegradedRead(self.key, data, self.cause)


@dataclass
class CacheEntry:
    data: Any
    stored_at: float
    ttl_seconds: float

    def fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


def generate_cache_key(route: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """'route?a=1&b=2' with params sorted by name; None values are left out."""
    if not params:
        return route
    parts = [f"{k}={params[k]}" for k in sorted(params) if params[k] is not None]
    return f"{route}?{'&'.join(parts)}" if parts else route


class CoalescingCache:
    """
    In-process TTL cache keyed by string.

    Expired entries are not evicted on read: they stay as the stale fallback
    until overwritten, invalidated or swept by cleanup(). Concurrent misses on
    one key share a single in-flight fetch.
    Invalidating a key while its fetch is in flight bumps the key's generation,
    and the fetch then returns its result without storing it.
    """

    def __init__(self, default_ttl: float = 30 * 60, clock: Callable[[], float] = time.time):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._generations: Dict[str, int] = {}
        self.hits = 0
        self.misses = 0

    # ---------- plain access ----------

    def get(self, key: str) -> Any:
        """Fresh value or None."""
        entry = self._entries.get(key)
        if entry is not None and entry.fresh(self._clock()):
            return entry.data
        return None

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(data=data, stored_at=self._clock(), ttl_seconds=self.default_ttl if ttl is None else ttl)

    def entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    # ---------- coalescing read-through ----------

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
        fallback: Any = _MISSING,
        raise_degraded: bool = False,
    ) -> Any:
        """
        Fresh entry -> returned. Otherwise join (or start) the one fetch for `key`.
        If that fetch fails: stale entry if any, else `fallback` if given, else re-raise.
        With `raise_degraded` the stale/fallback answer arrives wrapped in DegradedRead
        so callers that cache on top of this one can avoid storing it.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.fresh(self._clock()):
            self.hits += 1
            logger.debug("[CACHE] HIT %s", key)
            return entry.data

        self.misses += 1
        task = self._inflight.get(key)
        if task is None:
            logger.debug("[CACHE] MISS %s, fetching", key)
            task = asyncio.ensure_future(self._run_fetch(key, fetcher, ttl, self._generations.get(key, 0)))
            self._inflight[key] = task
        else:
            logger.debug("[CACHE] MISS %s, joining in-flight fetch", key)

        try:
            # shield: one caller being cancelled must not cancel the shared fetch
            return await asyncio.shield(task)
        except Exception as e:
            stale = self._entries.get(key)
            if stale is not None:
                logger.warning("[CACHE] Fetch for %s failed (%s); serving stale data", key, e)
                data = stale.data
            elif fallback is not _MISSING:
                logger.warning("[CACHE] Fetch for %s failed (%s); serving fallback", key, e)
                data = fallback
            else:
                raise
            if raise_degraded:
                raise DegradedRead(key, data, e) from e
            return data

    async def _run_fetch(
        self, key: str, fetcher: Callable[[], Awaitable[Any]], ttl: Optional[float], generation: int,
    ) -> Any:
        try:
            data = await fetcher()
            if self._generations.get(key, 0) == generation:
                self.set(key, data, ttl)
            else:
                logger.debug("[CACHE] %s invalidated during fetch, not storing", key)
            return data
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                self._inflight.pop(key, None)

    # ---------- invalidation ----------

    def _bump(self, keys) -> None:
        for k in keys:
            self._generations[k] = self._generations.get(k, 0) + 1

    def invalidate(self, key: str) -> bool:
        self._bump([key])
        return self._entries.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str) -> int:
        """Glob-style, e.g. 'data:*'."""
        self._bump([k for k in self._inflight if fnmatch.fnmatchcase(k, pattern)])
        doomed = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        self._bump(doomed)
        for k in doomed:
            del self._entries[k]
        if doomed:
            logger.info("[CACHE] Invalidated %d entries matching %s", len(doomed), pattern)
        return len(doomed)

    def clear(self) -> int:
        n = len(self._entries)
        self._bump(set(self._entries) | set(self._inflight))
        self._entries.clear()
        logger.info("[CACHE] Cleared %d entries", n)
        return n

    def cleanup(self) -> int:
        """Drop expired entries, including the stale copies get_or_fetch would fall back to."""
        now = self._clock()
        doomed = [k for k, e in self._entries.items() if not e.fresh(now)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        fresh = sum(1 for e in self._entries.values() if e.fresh(now))
        return {
            "size": len(self._entries),
            "fresh": fresh,
            "stale": len(self._entries) - fresh,
            "in_flight": len(self._inflight),
            "hits": self.hits,
            "misses": self.misses,
            "keys": sorted(self._entries),
        }


def cache_route(
    *,
    cache_getter: Callable[..., CoalescingCache],
    key_builder: Callable[..., str],
    ttl_seconds: Optional[int] = None,
    cache_control: str | None = None,  # defaults to private,max-age=ttl
):
    """
    Decorator for FastAPI routes (sync or async).
    - Caches the returned data by a computed key in the app's CoalescingCache.
    - Sets X-Cache: HIT|MISS|STALE, X-Cache-Stored-At, and Cache-Control on the Response if present in kwargs.
    - A route that raises DegradedRead is answered with its data but nothing is stored.
    `cache_getter` receives the route kwargs (so it can read request.app.state).
    """

    def decorator(fn: Callable):
        is_async = asyncio.iscoroutinefunction(fn)

        async def _call(*args, **kwargs):
            return await fn(*args, **kwargs) if is_async else fn(*args, **kwargs)

        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            response = kwargs.get("response")  # FastAPI Response if included in signature
            cache = cache_getter(*args, **kwargs)
            key = key_builder(*args, **kwargs)
            ttl = cache.default_ttl if ttl_seconds is None else ttl_seconds

            hit = cache.get(key) is not None
            try:
                data = await cache.get_or_fetch(key, lambda: _call(*args, **kwargs), ttl=ttl)
            except DegradedRead as e:
                logger.warning("[CACHE] %s answered from degraded data, not cached", key)
                if response is not None:
                    response.headers["X-Cache"] = "STALE"
                    response.headers["Cache-Control"] = "no-store"
                return e.data

            if response is not None:
                entry = cache.entry(key)
                response.headers["X-Cache"] = "HIT" if hit else "MISS"
                if entry is not None:
                    response.headers["X-Cache-Stored-At"] = str(int(entry.stored_at))
                response.headers["Cache-Control"] = cache_control or f"private, max-age={int(ttl)}"
            return data

        return wrapper
    return decorator
