"""Tests for CoalescingCache."""
import asyncio

import pytest

from app.services.cache import CoalescingCache, DegradedRead, generate_cache_key


class Clock:
    def __init__(self, t: float = 1_000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(clock):
    return CoalescingCache(default_ttl=60, clock=clock)


class Counter:
    def __init__(self, value="v", fail=False, gate: asyncio.Event = None):
        self.calls = 0
        self.value = value
        self.fail = fail
        self.gate = gate

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("database unavailable")
        return self.value


class TestCoalescing:

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, cache):
        gate = asyncio.Event()
        fetch = Counter(value=[1, 2, 3], gate=gate)

        callers = [asyncio.create_task(cache.get_or_fetch("data:teams", fetch)) for _ in range(10)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*callers)

        assert fetch.calls == 1
        assert all(r == [1, 2, 3] for r in results)
        assert cache.stats()["in_flight"] == 0

    @pytest.mark.asyncio
    async def test_concurrent_failure_is_shared_and_cleared(self, cache):
        gate = asyncio.Event()
        fetch = Counter(fail=True, gate=gate)

        callers = [asyncio.create_task(cache.get_or_fetch("k", fetch, fallback=[])) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*callers)

        assert fetch.calls == 1
        assert results == [[]] * 5
        # marker cleared: the next miss starts a new fetch
        retry = Counter(value="ok")
        assert await cache.get_or_fetch("k", retry) == "ok"
        assert retry.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fetch(self, cache):
        gate = asyncio.Event()
        fetch = Counter(value="shared", gate=gate)

        first = asyncio.create_task(cache.get_or_fetch("k", fetch))
        second = asyncio.create_task(cache.get_or_fetch("k", fetch))
        await asyncio.sleep(0)
        first.cancel()
        gate.set()

        assert await second == "shared"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert fetch.calls == 1


class TestTtlAndFallback:

    @pytest.mark.asyncio
    async def test_fresh_entry_skips_fetch(self, cache, clock):
        fetch = Counter(value="v1")
        await cache.get_or_fetch("k", fetch)
        clock.t += 59

        assert await cache.get_or_fetch("k", Counter(value="v2")) == "v1"
        assert cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_refetched(self, cache, clock):
        await cache.get_or_fetch("k", Counter(value="v1"))
        clock.t += 61

        assert await cache.get_or_fetch("k", Counter(value="v2")) == "v2"

    @pytest.mark.asyncio
    async def test_failed_refresh_serves_stale(self, cache, clock):
        """Given an expired entry, When the fetch fails, Then the stale payload comes back."""
        await cache.get_or_fetch("k", Counter(value=["old"]))
        clock.t += 3600

        assert await cache.get_or_fetch("k", Counter(fail=True)) == ["old"]
        # stale copy is still retained
        assert cache.entry("k").data == ["old"]

    @pytest.mark.asyncio
    async def test_failure_without_stale_uses_fallback_or_raises(self, cache):
        assert await cache.get_or_fetch("a", Counter(fail=True), fallback=[]) == []
        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("b", Counter(fail=True))

    @pytest.mark.asyncio
    async def test_per_call_ttl(self, cache, clock):
        await cache.get_or_fetch("k", Counter(value="v1"), ttl=5)
        clock.t += 6

        assert cache.get("k") is None
        assert cache.entry("k") is not None


class TestInvalidation:

    def test_clear_and_pattern(self, cache):
        cache.set("data:teams", 1)
        cache.set("data:matchups", 2)
        cache.set("other", 3)

        assert cache.invalidate_pattern("data:*") == 2
        assert cache.get("other") == 3
        assert cache.invalidate("other") is True
        assert cache.invalidate("other") is False

        cache.set("x", 1)
        assert cache.clear() == 1
        assert cache.stats()["size"] == 0

    def test_cleanup_drops_expired_only(self, cache, clock):
        cache.set("old", 1)
        clock.t += 120
        cache.set("new", 2)

        assert cache.cleanup() == 1
        assert cache.entry("old") is None
        assert cache.get("new") == 2

    def test_stats(self, cache, clock):
        cache.set("a", 1)
        clock.t += 120
        cache.set("b", 2)

        stats = cache.stats()

        assert stats["size"] == 2
        assert stats["fresh"] == 1
        assert stats["stale"] == 1
        assert stats["keys"] == ["a", "b"]


class TestCacheKey:

    def test_params_are_sorted_and_none_dropped(self):
        assert generate_cache_key("data:/matchups", {"week": 3, "season": "2024", "team": None}) == "data:/matchups?season=2024&week=3"

    def test_no_params(self):
        assert generate_cache_key("data:/teams") == "data:/teams"
        assert generate_cache_key("data:/teams", {"season": None}) == "data:/teams"


class TestInvalidationDuringFetch:

    @pytest.mark.asyncio
    async def test_pattern_invalidation_mid_fetch_is_not_undone(self, cache):
        """Given a fetch in flight, When its key is invalidated, Then the result is returned but not stored."""
        gate = asyncio.Event()
        caller = asyncio.create_task(cache.get_or_fetch("data:teams", Counter(value=["pre-sync"], gate=gate)))
        await asyncio.sleep(0)

        cache.invalidate_pattern("data:*")
        gate.set()

        assert await caller == ["pre-sync"]
        assert cache.entry("data:teams") is None
        fresh = Counter(value=["post-sync"])
        assert await cache.get_or_fetch("data:teams", fresh) == ["post-sync"]
        assert fresh.calls == 1

    @pytest.mark.asyncio
    async def test_clear_mid_fetch_is_not_undone(self, cache):
        gate = asyncio.Event()
        caller = asyncio.create_task(cache.get_or_fetch("k", Counter(value="old", gate=gate)))
        await asyncio.sleep(0)

        cache.clear()
        gate.set()
        await caller

        assert cache.entry("k") is None

    @pytest.mark.asyncio
    async def test_unrelated_invalidation_still_stores(self, cache):
        gate = asyncio.Event()
        caller = asyncio.create_task(cache.get_or_fetch("data:teams", Counter(value="v", gate=gate)))
        await asyncio.sleep(0)

        cache.invalidate("other")
        gate.set()
        await caller

        assert cache.get("data:teams") == "v"


class TestDegradedReads:

    @pytest.mark.asyncio
    async def test_fallback_is_wrapped_when_asked(self, cache):
        with pytest.raises(DegradedRead) as info:
            await cache.get_or_fetch("k", Counter(fail=True), fallback=[], raise_degraded=True)

        assert info.value.data == []
        assert isinstance(info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_stale_is_wrapped_when_asked(self, cache, clock):
        await cache.get_or_fetch("k", Counter(value=["old"]))
        clock.t += 3600

        with pytest.raises(DegradedRead) as info:
            await cache.get_or_fetch("k", Counter(fail=True), raise_degraded=True)

        assert info.value.data == ["old"]

    @pytest.mark.asyncio
    async def test_success_is_never_wrapped(self, cache):
        assert await cache.get_or_fetch("k", Counter(value=1), raise_degraded=True) == 1
