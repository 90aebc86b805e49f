"""Tests for the in-memory query cache."""

import asyncio
from types import SimpleNamespace

import pytest

from trial_lookup.adapters import cache as cache_module
from trial_lookup.adapters.cache import MemoryCache, cache_key, create_cache
from trial_lookup.domain.ports import NullCache


class TestMemoryCache:
    """Test suite for MemoryCache."""

    def test_rejects_invalid_limits(self):
        with pytest.raises(ValueError):
            MemoryCache(ttl=0)
        with pytest.raises(ValueError):
            MemoryCache(max_entries=0)

    def test_keys_are_digests(self):
        assert cache_key("body") == cache_key("body")
        assert cache_key("body") != cache_key("other")
        assert len(cache_key("body")) == 64

    @pytest.mark.asyncio
    async def test_get_and_set(self):
        cache = MemoryCache()

        assert await cache.get("query") is None
        await cache.set("query", [{"trialId": "NCT12345678"}])

        assert await cache.get("query") == [{"trialId": "NCT12345678"}]
        assert cache.get_statistics()["hits"] == 1
        assert cache.get_statistics()["misses"] == 1

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        cache = MemoryCache()
        value = [{"trialId": "NCT12345678"}]

        await cache.set("query", value)
        value[0]["trialId"] = "changed"
        cached = await cache.get("query")
        cached.append({"trialId": "extra"})

        assert await cache.get("query") == [{"trialId": "NCT12345678"}]

    @pytest.mark.asyncio
    async def test_entries_expire(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: now[0]))
        cache = MemoryCache(ttl=10)

        await cache.set("query", [])
        now[0] += 9
        assert await cache.get("query") == []
        now[0] += 2
        assert await cache.get("query") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_least_recently_used_is_evicted(self):
        cache = MemoryCache(max_entries=2)

        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")
        await cache.set("c", 3)

        assert await cache.get("a") == 1
        assert await cache.get("b") is None
        assert await cache.get("c") == 3
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_concurrent_access(self):
        cache = MemoryCache(max_entries=50)

        async def worker(i):
            await cache.set(f"q{i}", [i])
            return await cache.get(f"q{i}")

        results = await asyncio.gather(*(worker(i) for i in range(20)))

        assert results == [[i] for i in range(20)]
        assert len(cache) == 20


class TestCreateCache:
    def test_disabled(self):
        cache = create_cache(False)
        assert isinstance(cache, NullCache)
        assert cache.get_statistics() == {"enabled": False}

    def test_enabled(self):
        cache = create_cache(True, ttl=5, max_entries=3)
        assert isinstance(cache, MemoryCache)
        assert cache.ttl == 5
        assert cache.max_entries == 3
