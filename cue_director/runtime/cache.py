"""
Caching Module - Resolution and decoded-asset caches.

Both caches are only touched from the event loop; decoding runs in a
worker thread but its result is stored after the await returns.

Usage:
    resolutions = ResolutionCache()
    resolutions.put("sfx", "dog bark", "https://cdn/dog.wav")
    resolutions.get("sfx", "dog bark")      # cache hit, skips the provider chain

    assets = AssetCache()
    assets.put(decoded)                     # keyed by decoded.url
    assets.get("https://cdn/dog.wav")
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, TypeVar

from cue_director.runtime.audio import DecodedAsset

V = TypeVar("V")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0


class BoundedCache(Generic[V]):
    """Least-recently-used mapping capped at ``max_size`` entries."""

    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._items: OrderedDict[str, V] = OrderedDict()
        self.stats = CacheStats()

    def get(self, key: str) -> V | None:
        value = self._items.get(key)
        if value is None:
            self.stats.misses += 1
            return None
        self._items.move_to_end(key)
        self.stats.hits += 1
        return value

    def put(self, key: str, value: V) -> None:
        self._items[key] = value
        self._items.move_to_end(key)
        while len(self._items) > self.max_size:
            self._items.popitem(last=False)
            self.stats.evictions += 1

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class ResolutionCache:
    """Resolved URLs keyed by ``(sound type, query)``.

    Only successful resolutions are stored; a miss is retried on the next
    request.
    """

    def __init__(self, max_size: int = 512):
        self._cache: BoundedCache[str] = BoundedCache(max_size)

    @staticmethod
    def make_key(sound_type: str, query: str) -> str:
        return f"{sound_type}:{query.strip().lower()}"

    def get(self, sound_type: str, query: str) -> str | None:
        return self._cache.get(self.make_key(sound_type, query))

    def put(self, sound_type: str, query: str, url: str) -> None:
        self._cache.put(self.make_key(sound_type, query), url)

    def contains(self, sound_type: str, query: str) -> bool:
        return self.make_key(sound_type, query) in self._cache

    def clear(self) -> None:
        self._cache.clear()

    @property
    def stats(self) -> CacheStats:
        return self._cache.stats

    def __len__(self) -> int:
        return len(self._cache)


class AssetCache:
    """Decoded assets keyed by URL.

    Written by any epoch, including superseded ones; a stale preload that
    finishes late still leaves a warm asset behind.
    """

    def __init__(self, max_size: int = 128):
        self._cache: BoundedCache[DecodedAsset] = BoundedCache(max_size)

    def get(self, url: str) -> DecodedAsset | None:
        return self._cache.get(url)

    def put(self, asset: DecodedAsset) -> None:
        self._cache.put(asset.url, asset)

    def contains(self, url: str) -> bool:
        return url in self._cache

    def clear(self) -> None:
        self._cache.clear()

    @property
    def stats(self) -> CacheStats:
        return self._cache.stats

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, url: str) -> bool:
        return self.contains(url)
