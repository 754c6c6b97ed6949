"""
Cache Tests - LRU eviction, resolution and asset caches.
"""

import numpy as np

from cue_director.runtime.audio import DecodedAsset
from cue_director.runtime.cache import AssetCache, BoundedCache, CacheStats, ResolutionCache


def asset(url: str, n: int = 100) -> DecodedAsset:
    return DecodedAsset(url=url, samples=np.zeros(n, dtype=np.float32), sample_rate=8000)


class TestBoundedCache:
    """Tests for the LRU store behind both caches."""

    def test_basic_put_get(self):
        """Basic put and get operations."""
        cache = BoundedCache(max_size=10)
        cache.put("key1", "value1")

        assert cache.get("key1") == "value1"
        assert cache.get("missing") is None

    def test_eviction_on_full(self):
        """Least recently used item is evicted when full."""
        cache = BoundedCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert cache.stats.evictions == 1

    def test_put_existing_refreshes(self):
        """Re-putting a key replaces it without evicting."""
        cache = BoundedCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 10)
        cache.put("c", 3)

        assert cache.get("a") == 10
        assert "b" not in cache
        assert len(cache) == 2

    def test_stats(self):
        """Hits and misses are counted."""
        cache = BoundedCache(max_size=10)
        cache.put("a", 1)
        cache.get("a")
        cache.get("z")

        assert cache.stats == CacheStats(hits=1, misses=1, evictions=0)

    def test_clear(self):
        cache = BoundedCache(max_size=10)
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestResolutionCache:
    """Tests for ResolutionCache."""

    def test_key_normalized(self):
        """Keys ignore case and surrounding whitespace."""
        cache = ResolutionCache()
        cache.put("sfx", "Dog Bark ", "https://x/dog.wav")

        assert cache.get("sfx", "dog bark") == "https://x/dog.wav"
        assert cache.contains("sfx", "DOG BARK")

    def test_type_separates(self):
        """Music and sfx resolutions don't collide."""
        cache = ResolutionCache()
        cache.put("sfx", "rain", "https://x/rain.wav")

        assert cache.get("music", "rain") is None
        assert cache.stats.misses == 1


class TestAssetCache:
    """Tests for AssetCache."""

    def test_keyed_by_url(self):
        """Assets are stored under their URL."""
        cache = AssetCache()
        decoded = asset("https://x/a.wav")
        cache.put(decoded)

        assert "https://x/a.wav" in cache
        assert cache.get("https://x/a.wav") is decoded

    def test_bounded(self):
        """Older assets are dropped past the size limit."""
        cache = AssetCache(max_size=1)
        cache.put(asset("https://x/a.wav"))
        cache.put(asset("https://x/b.wav"))

        assert not cache.contains("https://x/a.wav")
        assert len(cache) == 1
