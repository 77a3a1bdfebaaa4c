"""Tests for covgate.utils.cache."""

from __future__ import annotations

from covgate.utils.cache import MemoryCache, content_hash


class TestMemoryCache:
    def test_put_and_get(self) -> None:
        cache: MemoryCache[str] = MemoryCache()
        cache.put("k1", "v1")
        assert cache.get("k1") == "v1"

    def test_get_missing_returns_none(self) -> None:
        cache: MemoryCache[str] = MemoryCache()
        assert cache.get("missing") is None

    def test_lru_eviction(self) -> None:
        cache: MemoryCache[int] = MemoryCache(max_size=3)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        cache.get("a")
        cache.put("d", 4)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.size == 3

    def test_put_overwrites_existing(self) -> None:
        cache: MemoryCache[str] = MemoryCache()
        cache.put("k1", "old")
        cache.put("k1", "new")
        assert cache.get("k1") == "new"
        assert cache.size == 1

    def test_clear(self) -> None:
        cache: MemoryCache[str] = MemoryCache()
        cache.put("k1", "v1")
        cache.put("k2", "v2")
        cache.clear()
        assert cache.get("k1") is None
        assert cache.size == 0


class TestContentHash:
    def test_deterministic(self) -> None:
        assert content_hash(b"hello") == content_hash(b"hello")

    def test_different_inputs_differ(self) -> None:
        assert content_hash(b"hello") != content_hash(b"world")

    def test_length_is_16(self) -> None:
        assert len(content_hash(b"anything")) == 16
