"""Tests for the fetch cache and the in-flight audit registry."""

import asyncio

import pytest


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Expiry, LRU eviction and per-entry TTLs."""

    def test_get_and_expire(self):
        from seo_grader.utils.cache import TTLCache
        clock = FakeClock()
        cache = TTLCache(max_size=4, ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert "a" in cache

        clock.now += 60
        assert cache.get("a") is None
        assert "a" not in cache
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        from seo_grader.utils.cache import TTLCache
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=600, clock=clock)
        cache.set("short", "s", ttl=5)
        cache.set("long", "l")
        clock.now += 10
        assert cache.get("short") is None
        assert cache.get("long") == "l"

    def test_zero_ttl_is_not_stored(self):
        from seo_grader.utils.cache import TTLCache
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1)
        cache.set("a", 2, ttl=0)
        assert cache.get("a") is None

    def test_lru_eviction(self):
        from seo_grader.utils.cache import TTLCache
        cache = TTLCache(max_size=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_invalid_size(self):
        from seo_grader.utils.cache import TTLCache
        with pytest.raises(ValueError):
            TTLCache(max_size=0)

    def test_invalidate_and_clear(self):
        from seo_grader.utils.cache import TTLCache
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0


class TestCacheControl:
    @pytest.mark.parametrize("header, ttl", [
        (None, None),
        ("", None),
        ("public", None),
        ("public, max-age=300", 300.0),
        ("s-maxage=10", 10.0),
        ("no-store", 0),
        ("private, no-cache, max-age=60", 0),
    ])
    def test_ttl_from_cache_control(self, header, ttl):
        from seo_grader.utils.cache import ttl_from_cache_control
        assert ttl_from_cache_control(header) == ttl


class TestInFlightRegistry:
    """Concurrent callers of one key share a single execution."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_run(self):
        from seo_grader.utils.inflight import InFlightRegistry
        registry = InFlightRegistry()
        calls = 0
        gate = asyncio.Event()

        async def work():
            nonlocal calls
            calls += 1
            await gate.wait()
            return {"report": calls}

        first = asyncio.ensure_future(registry.run("k", work))
        second = asyncio.ensure_future(registry.run("k", work))
        await asyncio.sleep(0)
        assert "k" in registry
        gate.set()
        a, b = await asyncio.gather(first, second)

        assert calls == 1
        assert a is b
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_different_keys_run_separately(self):
        from seo_grader.utils.inflight import InFlightRegistry
        registry = InFlightRegistry()

        async def work(value):
            await asyncio.sleep(0)
            return value

        a, b = await asyncio.gather(
            registry.run("a", lambda: work(1)),
            registry.run("b", lambda: work(2)),
        )
        assert (a, b) == (1, 2)

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        from seo_grader.utils.inflight import InFlightRegistry
        registry = InFlightRegistry()

        async def boom():
            raise RuntimeError("fetch failed")

        with pytest.raises(RuntimeError):
            await registry.run("k", boom)
        assert registry.pending() == []

        async def ok():
            return "fresh"

        assert await registry.run("k", ok) == "fresh"

    @pytest.mark.asyncio
    async def test_caller_cancellation_does_not_cancel_shared_work(self):
        from seo_grader.utils.inflight import InFlightRegistry
        registry = InFlightRegistry()
        gate = asyncio.Event()

        async def work():
            await gate.wait()
            return "done"

        quitter = asyncio.ensure_future(registry.run("k", work))
        stayer = asyncio.ensure_future(registry.run("k", work))
        await asyncio.sleep(0)
        quitter.cancel()
        gate.set()
        assert await stayer == "done"
        with pytest.raises(asyncio.CancelledError):
            await quitter


class TestAuditKeys:
    """URLs that must share one cache entry / in-flight audit."""

    @pytest.mark.parametrize("url, key", [
        ("example.com", "https://example.com/"),
        ("HTTPS://Example.COM", "https://example.com/"),
        ("https://example.com/#pricing", "https://example.com/"),
        ("http://example.com/About?q=1", "http://example.com/About?q=1"),
    ])
    def test_normalize_url(self, url, key):
        from seo_grader.utils.helpers import normalize_url
        assert normalize_url(url) == key

    @pytest.mark.parametrize("value, expected", [(96.5, 97), (96.49, 96), (0.5, 1), (100.0, 100)])
    def test_round_half_up(self, value, expected):
        from seo_grader.utils.helpers import round_half_up
        assert round_half_up(value) == expected
