"""Unit tests for the suggestion cache."""

import asyncio

import pytest

from src.domains.circles.cache import SuggestionCache
from src.domains.circles.models import DunbarCircle, ScoringMode
from tests.helpers import USER_ID, make_suggestion


@pytest.fixture
def cache(timer) -> SuggestionCache:
    return SuggestionCache(ttl_seconds=300, maxsize=100, timer=timer)


class CountingCompute:
    def __init__(self, contact_id: str = "c1") -> None:
        self.calls = 0
        self.contact_id = contact_id

    async def __call__(self):
        self.calls += 1
        return make_suggestion(self.contact_id, confidence=50 + self.calls)


class TestTTL:
    @pytest.mark.asyncio
    async def test_served_from_cache_within_ttl(self, cache, timer):
        compute = CountingCompute()
        first = await cache.get_or_compute(USER_ID, "c1", compute)
        timer.advance(299)
        second = await cache.get_or_compute(USER_ID, "c1", compute)

        assert compute.calls == 1
        assert second == first

    @pytest.mark.asyncio
    async def test_recomputed_after_expiry(self, cache, timer):
        compute = CountingCompute()
        await cache.get_or_compute(USER_ID, "c1", compute)
        timer.advance(300)
        refreshed = await cache.get_or_compute(USER_ID, "c1", compute)

        assert compute.calls == 2
        assert refreshed.confidence == 52

    def test_get_drops_expired_entry(self, cache, timer):
        cache.set(USER_ID, "c1", make_suggestion("c1"))
        timer.advance(301)
        assert cache.get(USER_ID, "c1") is None
        assert len(cache) == 0

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            SuggestionCache(ttl_seconds=0)

    def test_keys_are_per_user(self, cache):
        cache.set("user-a", "c1", make_suggestion("c1", DunbarCircle.INNER))
        assert cache.get("user-b", "c1") is None


class TestModes:
    @pytest.mark.asyncio
    async def test_entry_from_other_mode_is_overwritten(self, cache):
        cache.set(USER_ID, "c1", make_suggestion("c1"))

        async def onboarding_compute():
            return make_suggestion("c1").model_copy(update={"mode": ScoringMode.ONBOARDING})

        result = await cache.get_or_compute(
            USER_ID, "c1", onboarding_compute, mode=ScoringMode.ONBOARDING
        )

        assert result.mode == ScoringMode.ONBOARDING
        assert cache.get(USER_ID, "c1", ScoringMode.STANDARD) is None
        assert cache.get(USER_ID, "c1") == result
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_in_flight_other_mode_is_not_joined(self, cache):
        gate = asyncio.Event()

        async def slow_standard():
            await gate.wait()
            return make_suggestion("c1")

        async def onboarding_compute():
            return make_suggestion("c1").model_copy(update={"mode": ScoringMode.ONBOARDING})

        standard_task = asyncio.create_task(
            cache.get_or_compute(USER_ID, "c1", slow_standard, mode=ScoringMode.STANDARD)
        )
        await asyncio.sleep(0)
        onboarding = await cache.get_or_compute(
            USER_ID, "c1", onboarding_compute, mode=ScoringMode.ONBOARDING
        )
        gate.set()
        standard = await standard_task

        assert onboarding.mode == ScoringMode.ONBOARDING
        assert standard.mode == ScoringMode.STANDARD
        # The superseded standard result is not stored over the newer entry.
        assert cache.get(USER_ID, "c1", ScoringMode.ONBOARDING) == onboarding


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_computation(self, cache):
        gate = asyncio.Event()
        calls = 0

        async def slow_compute():
            nonlocal calls
            calls += 1
            await gate.wait()
            return make_suggestion("c1")

        tasks = [
            asyncio.create_task(cache.get_or_compute(USER_ID, "c1", slow_compute))
            for _ in range(5)
        ]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_and_is_not_cached(self, cache):
        gate = asyncio.Event()

        async def failing():
            await gate.wait()
            raise RuntimeError("signal store down")

        tasks = [
            asyncio.create_task(cache.get_or_compute(USER_ID, "c1", failing)) for _ in range(3)
        ]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)
        assert cache.get(USER_ID, "c1") is None

        compute = CountingCompute()
        await cache.get_or_compute(USER_ID, "c1", compute)
        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_invalidation_during_compute_skips_store(self, cache):
        gate = asyncio.Event()

        async def slow_compute():
            await gate.wait()
            return make_suggestion("c1")

        task = asyncio.create_task(cache.get_or_compute(USER_ID, "c1", slow_compute))
        await asyncio.sleep(0)
        cache.invalidate(USER_ID, "c1")
        gate.set()
        await task

        assert cache.get(USER_ID, "c1") is None


class TestEvictionAndInvalidation:
    def test_lru_eviction(self, timer):
        cache = SuggestionCache(ttl_seconds=300, maxsize=2, timer=timer)
        cache.set(USER_ID, "c1", make_suggestion("c1"))
        cache.set(USER_ID, "c2", make_suggestion("c2"))
        cache.get(USER_ID, "c1")  # c2 is now least recently used
        cache.set(USER_ID, "c3", make_suggestion("c3"))

        assert cache.get(USER_ID, "c2") is None
        assert cache.get(USER_ID, "c1") is not None
        assert cache.get(USER_ID, "c3") is not None
        assert cache.stats()["evictions"] == 1

    def test_invalidate_many_and_user(self, cache):
        for contact_id in ("c1", "c2", "c3"):
            cache.set(USER_ID, contact_id, make_suggestion(contact_id))
        cache.set("other-user", "c1", make_suggestion("c1"))

        assert cache.invalidate_many(USER_ID, ["c1", "c2", "missing"]) == 2
        assert cache.invalidate_user(USER_ID) == 1
        assert len(cache) == 1
        assert cache.get("other-user", "c1") is not None

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        compute = CountingCompute()
        await cache.get_or_compute(USER_ID, "c1", compute)
        await cache.get_or_compute(USER_ID, "c1", compute)
        await cache.get_or_compute(USER_ID, "c1", compute)

        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(2 / 3)
        assert stats["entries"] == 1

        cache.clear()
        assert cache.stats()["hits"] == 0
        assert len(cache) == 0
