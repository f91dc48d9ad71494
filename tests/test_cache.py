"""Tests for logostream.cache — TTL and LRU behaviour."""

from __future__ import annotations

import pytest

from logostream.cache import CacheKind, GenerationCache, brief_key
from logostream.schemas.brief import LogoBrief
from logostream.settings import CacheConfig, CacheTTL


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return GenerationCache(CacheConfig(max_items=3), clock=clock)


class TestGetSet:
    def test_roundtrip(self, cache):
        cache.set("k", {"assets": {}})
        assert cache.get("k") == {"assets": {}}

    def test_missing_key(self, cache):
        assert cache.get("nope") is None
        assert cache.stats().misses == 1

    def test_kind_mismatch_is_a_miss(self, cache):
        cache.set("k", "v", CacheKind.ASSET)
        assert cache.get("k", CacheKind.GENERATION) is None
        assert cache.get("k", "asset") == "v"

    def test_unknown_kind_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.set("k", "v", "thumbnails")


class TestExpiry:
    def test_entry_expires_after_kind_ttl(self, cache, clock):
        cache.set("p", 1, CacheKind.PROGRESS)
        clock.advance(899)
        assert cache.get("p", CacheKind.PROGRESS) == 1
        clock.advance(1)
        assert cache.get("p", CacheKind.PROGRESS) is None
        assert len(cache) == 0

    def test_kinds_have_their_own_ttl(self, clock):
        cache = GenerationCache(
            CacheConfig(ttl=CacheTTL(generation=100, intermediate=10)), clock=clock
        )
        cache.set("g", 1, CacheKind.GENERATION)
        cache.set("i", 2, CacheKind.INTERMEDIATE)
        clock.advance(50)
        assert cache.get("g") == 1
        assert cache.get("i", CacheKind.INTERMEDIATE) is None

    def test_ttl_override(self, cache, clock):
        cache.set("k", "v", ttl=5)
        clock.advance(5)
        assert cache.get("k") is None

    def test_cleanup_removes_only_expired(self, cache, clock):
        cache.set("short", 1, ttl=10)
        cache.set("long", 2, ttl=100)
        clock.advance(20)
        assert cache.cleanup() == 1
        assert cache.get("long") == 2


class TestEviction:
    def test_least_recently_used_evicted(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        cache.get("a")
        cache.set("d", 4)

        assert len(cache) == 3
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("d") == 4

    def test_overwrite_does_not_grow(self, cache):
        cache.set("a", 1)
        cache.set("a", 2)
        assert len(cache) == 1
        assert cache.get("a") == 2


class TestManagement:
    def test_invalidate(self, cache):
        cache.set("a", 1)
        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False

    def test_clear_keeps_counters(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.clear()
        stats = cache.stats()
        assert stats.items == 0
        assert stats.hits == 1

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.set("b", 2, CacheKind.ASSET)
        cache.get("a")
        cache.get("missing")
        stats = cache.stats()
        assert stats.enabled is True
        assert stats.items == 2
        assert stats.items_by_kind["generation"] == 1
        assert stats.items_by_kind["asset"] == 1
        assert stats.hit_ratio == 0.5

    def test_disabled_cache_is_noop(self, clock):
        cache = GenerationCache(CacheConfig(enabled=False), clock=clock)
        cache.set("a", 1)
        assert cache.get("a") is None
        assert len(cache) == 0
        assert cache.stats().enabled is False


class TestBriefKey:
    def test_same_content_same_key(self):
        a = LogoBrief(prompt="coffee shop", color_palette=["brown"])
        b = LogoBrief(color_palette=["brown"], prompt="coffee shop")
        assert brief_key(a) == brief_key(b)

    def test_different_content_different_key(self):
        assert brief_key(LogoBrief(prompt="a")) != brief_key(LogoBrief(prompt="b"))

    def test_dict_and_model_agree(self):
        brief = LogoBrief(prompt="tea")
        assert brief_key(brief) == brief_key(brief.model_dump(mode="json"))
