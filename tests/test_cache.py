"""Tests for the bounded content cache."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from querydoctor.analyzer.cache import ContentCache, content_hash


class TestContentCache:

    def test_computes_once_per_key(self):
        cache: ContentCache[str] = ContentCache(capacity=10)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("SELECT 1", compute) == "value"
        assert cache.get_or_compute("SELECT 1", compute) == "value"
        assert len(calls) == 1
        assert cache.hit_rate == 0.5

    def test_get_missing_returns_none(self):
        cache: ContentCache[str] = ContentCache()

        assert cache.get("SELECT 1") is None

    def test_evicts_oldest_at_capacity(self):
        cache: ContentCache[int] = ContentCache(capacity=5)

        for i in range(6):
            cache.get_or_compute(f"SELECT {i}", lambda i=i: i)

        assert len(cache) == 5
        assert "SELECT 0" not in cache
        assert "SELECT 5" in cache
        assert cache.stats()["evictions"] == 1

    def test_eviction_drops_a_fifth(self):
        cache: ContentCache[int] = ContentCache(capacity=10)

        for i in range(11):
            cache.get_or_compute(f"SELECT {i}", lambda i=i: i)

        assert len(cache) == 9
        assert cache.stats()["evictions"] == 2

    def test_clear_resets_statistics(self):
        cache: ContentCache[int] = ContentCache(capacity=5)
        cache.get_or_compute("SELECT 1", lambda: 1)

        cache.clear()

        assert len(cache) == 0
        assert cache.stats()["misses"] == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ContentCache(capacity=0)

    def test_concurrent_callers_agree(self):
        cache: ContentCache[object] = ContentCache(capacity=100)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(
                lambda _: cache.get_or_compute("SELECT 1", object),
                range(32),
            ))

        assert len(cache) == 1
        assert all(r is results[0] for r in results)

    def test_content_hash(self):
        digest = content_hash("SELECT 1")

        assert digest == content_hash("SELECT 1")
        assert digest != content_hash("SELECT 2")
        assert len(digest) == 64
