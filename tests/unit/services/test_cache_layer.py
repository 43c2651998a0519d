"""Tests for CacheLayer freshness, invalidation and listeners."""

from __future__ import annotations

import asyncio

import pytest

from benchrecon.core.exceptions import PassCancelledError
from benchrecon.services.cache_layer import (
    INVALIDATION_TABLE,
    CacheKind,
    CacheLayer,
    Freshness,
    InvalidationEvent,
    param_key,
)


# ---------- helpers ----------

class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Counter:
    """Async compute function that returns an increasing version number."""

    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> dict:
        self.calls += 1
        return {"version": self.calls, "items": [1, 2, 3]}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheLayer(fresh_seconds=100, stale_seconds=50, clock=clock)


# ---------- freshness ----------

class TestFreshness:
    async def test_miss_then_hit(self, cache):
        compute = Counter()
        first = await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        second = await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        assert first == second
        assert compute.calls == 1
        assert cache.stats.misses == 1
        assert cache.stats.hits == 1

    async def test_stale_served_and_refreshed_in_background(self, cache, clock):
        compute = Counter()
        await cache.get_or_compute(CacheKind.DISCOVERY, compute)
        clock.advance(120)
        assert cache.freshness(CacheKind.DISCOVERY) is Freshness.STALE

        stale = await cache.get_or_compute(CacheKind.DISCOVERY, compute)
        assert stale["version"] == 1
        await cache.drain()
        assert compute.calls == 2
        assert cache.freshness(CacheKind.DISCOVERY) is Freshness.FRESH
        assert (await cache.get_or_compute(CacheKind.DISCOVERY, compute))["version"] == 2

    async def test_at_most_one_refresh_per_slot(self, cache, clock):
        gate = asyncio.Event()
        calls = 0

        async def slow() -> int:
            nonlocal calls
            calls += 1
            if calls > 1:
                await gate.wait()
            return calls

        await cache.get_or_compute(CacheKind.AGGREGATION, slow)
        clock.advance(120)
        await cache.get_or_compute(CacheKind.AGGREGATION, slow)
        await cache.get_or_compute(CacheKind.AGGREGATION, slow)
        await asyncio.sleep(0)
        gate.set()
        await cache.drain()
        assert calls == 2
        assert cache.stats.refreshes == 1

    async def test_expired_recomputes_blocking(self, cache, clock):
        compute = Counter()
        await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        clock.advance(200)
        assert cache.freshness(CacheKind.AGGREGATION) is Freshness.EXPIRED
        value = await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        assert value["version"] == 2
        assert cache.stats.evictions == 1

    async def test_failed_refresh_keeps_stale_value(self, cache, clock):
        calls = 0

        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls > 1:
                raise RuntimeError("boom")
            return "v1"

        await cache.get_or_compute(CacheKind.AGGREGATION, flaky)
        clock.advance(120)
        assert await cache.get_or_compute(CacheKind.AGGREGATION, flaky) == "v1"
        await cache.drain()
        assert cache.stats.refresh_failures == 1
        assert cache.peek(CacheKind.AGGREGATION) == "v1"


class TestIsolation:
    async def test_values_are_deep_copied(self, cache):
        compute = Counter()
        value = await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        value["items"].append(99)
        again = await cache.get_or_compute(CacheKind.AGGREGATION, compute)
        assert again["items"] == [1, 2, 3]
        again["items"].clear()
        assert cache.peek(CacheKind.AGGREGATION)["items"] == [1, 2, 3]

    async def test_keyed_kinds_use_params(self, cache):
        a = await cache.get_or_compute(CacheKind.SUMMARY, Counter(), params={"v": ["tcc"]})
        b = await cache.get_or_compute(CacheKind.SUMMARY, Counter(), params={"v": ["work_rvus"]})
        assert a == b  # independent counters both start at 1
        assert len(cache) == 2

    def test_param_key_is_order_insensitive(self):
        assert param_key({"a": 1, "b": 2}) == param_key({"b": 2, "a": 1})
        assert param_key(None) == ""

    async def test_cancelled_compute_caches_nothing(self, cache):
        async def cancelled() -> int:
            raise PassCancelledError("test")

        with pytest.raises(PassCancelledError):
            await cache.get_or_compute(CacheKind.AGGREGATION, cancelled)
        assert cache.peek(CacheKind.AGGREGATION) is None

    async def test_invalidation_during_compute_skips_store(self, cache):
        async def racing() -> str:
            cache.emit(InvalidationEvent.MAPPING_CHANGED)
            return "stale-result"

        assert await cache.get_or_compute(CacheKind.AGGREGATION, racing) == "stale-result"
        assert cache.peek(CacheKind.AGGREGATION) is None


# ---------- invalidation ----------

def _fill(cache: CacheLayer) -> None:
    for kind in CacheKind:
        cache.put(kind, kind.value, params={"k": 1})


class TestInvalidation:
    @pytest.mark.parametrize("event,cleared", [
        (InvalidationEvent.NEW_SOURCE_INGESTED, set(CacheKind)),
        (InvalidationEvent.CORPUS_CLEARED, set(CacheKind)),
        (InvalidationEvent.SOURCE_REMOVED,
         {CacheKind.DISCOVERY, CacheKind.AGGREGATION, CacheKind.GROUPING, CacheKind.SUMMARY,
          CacheKind.FILTER}),
        (InvalidationEvent.MAPPING_CHANGED,
         {CacheKind.MAPPINGS, CacheKind.AGGREGATION, CacheKind.GROUPING, CacheKind.SUMMARY,
          CacheKind.FILTER}),
        (InvalidationEvent.VARIABLE_SELECTION_CHANGED, {CacheKind.SUMMARY, CacheKind.GROUPING}),
        (InvalidationEvent.FILTER_CHANGED, {CacheKind.FILTER}),
    ])
    def test_event_clears_exactly_its_kinds(self, cache, event, cleared):
        _fill(cache)
        removed = cache.emit(event)
        assert removed == len(cleared)
        for kind in CacheKind:
            present = cache.peek(kind, params={"k": 1}) is not None
            assert present is (kind not in cleared)

    def test_mapping_change_keeps_discovery(self):
        assert CacheKind.DISCOVERY not in INVALIDATION_TABLE[InvalidationEvent.MAPPING_CHANGED]

    def test_source_removed_keeps_mappings(self):
        assert CacheKind.MAPPINGS not in INVALIDATION_TABLE[InvalidationEvent.SOURCE_REMOVED]


class TestListeners:
    def test_subscribe_and_unsubscribe(self, cache):
        seen: list[InvalidationEvent] = []
        unsubscribe = cache.subscribe(InvalidationEvent.FILTER_CHANGED, seen.append)
        cache.emit(InvalidationEvent.FILTER_CHANGED)
        cache.emit(InvalidationEvent.MAPPING_CHANGED)
        unsubscribe()
        cache.emit(InvalidationEvent.FILTER_CHANGED)
        assert seen == [InvalidationEvent.FILTER_CHANGED]

    def test_failing_listener_does_not_block_others(self, cache):
        seen: list[str] = []

        def broken(_event):
            raise RuntimeError("listener bug")

        cache.subscribe(InvalidationEvent.CORPUS_CLEARED, broken)
        cache.subscribe(InvalidationEvent.CORPUS_CLEARED, lambda e: seen.append(str(e)))
        cache.emit(InvalidationEvent.CORPUS_CLEARED)
        assert seen == ["corpus_cleared"]
