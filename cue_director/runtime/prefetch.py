"""
Prefetch Scheduler - Resolution chain, asset warming and a bounded worker pool.

Resolution walks a fixed chain (local library, then each remote search
provider in order); the first URL wins and is cached by ``(type, query)``.
Warming downloads and decodes a URL into the asset cache.

Background work (mode preloads, story-window prefetch, predictive and
alternate prefetch) goes through a fixed-size pool of workers pulling from
one ``asyncio.Queue``, so network concurrency never exceeds the pool size.

Every piece of work carries the epoch it was submitted under. After each
suspension point the epoch is re-checked; a stale task may still fill the
caches but its result is never handed back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cue_director.catalog import LocalLibrary
from cue_director.config import DirectorConfig
from cue_director.epoch import Epoch, EpochCounter
from cue_director.errors import AssetLoadError, DirectorError, ResolutionError, StaleEpochError
from cue_director.providers.base import AssetFetcher, SearchProvider
from cue_director.runtime.audio import DecodedAsset, decode_audio
from cue_director.runtime.cache import AssetCache, ResolutionCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreloadTask:
    """A queued resolve-and-warm request."""
    query: str
    sound_type: str
    epoch: Epoch | None = None

    @property
    def key(self) -> str:
        return ResolutionCache.make_key(self.sound_type, self.query)


@dataclass
class PrefetchStats:
    """Scheduler counters."""
    submitted: int = 0
    completed: int = 0
    resolved: int = 0
    failed: int = 0
    stale: int = 0
    timeouts: int = 0
    sources: dict[str, int] = field(default_factory=dict)


class PrefetchScheduler:
    """
    Resolve queries to URLs and keep decoded assets warm.

    Example:
        scheduler = PrefetchScheduler(
            fetcher=HttpAssetFetcher(),
            providers=[FreesoundProvider(api_key)],
            library=LocalLibrary.from_catalog(catalog),
        )

        url = await scheduler.resolve("dog bark", "sfx", epochs.current)
        asset = await scheduler.load(url, epochs.current)

        scheduler.preload(["thunder", "owl hoot"], "sfx", epochs.current)
        await scheduler.wait_for_preload(epochs.current, timeout=12.0)
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        providers: Sequence[SearchProvider] = (),
        library: LocalLibrary | None = None,
        config: DirectorConfig | None = None,
        epochs: EpochCounter | None = None,
        resolutions: ResolutionCache | None = None,
        assets: AssetCache | None = None,
        concurrency: int | None = None,
        decoder: Callable[[bytes, str], DecodedAsset] = decode_audio,
    ):
        self.config = config or DirectorConfig()
        self.fetcher = fetcher
        self.providers = list(providers)
        self.library = library
        self.epochs = epochs or EpochCounter()
        self.resolutions = resolutions or ResolutionCache()
        self.assets = assets or AssetCache()
        self._decoder = decoder
        self._concurrency = concurrency or self.config.base_concurrency

        self._queue: asyncio.Queue[PreloadTask] | None = None
        self._workers: list[asyncio.Task] = []
        self._pending: set[str] = set()
        self._loading: dict[str, asyncio.Task] = {}
        self.stats = PrefetchStats()

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(self, query: str, sound_type: str, epoch: Epoch | None = None) -> str | None:
        """Resolve a query through the chain.

        Returns:
            URL, or None if nothing was found, every attempt timed out, or
            ``epoch`` went stale while resolving.
        """
        query = query.strip()
        if not query:
            return None

        cached = self.resolutions.get(sound_type, query)
        if cached is not None:
            return cached if self.epochs.is_current(epoch) else None

        try:
            url = await self._resolve_chain(query, sound_type)
        except ResolutionError as e:
            logger.debug(e.message)
            return None

        if not self.epochs.is_current(epoch):
            self.stats.stale += 1
            return None
        return url

    async def _resolve_chain(self, query: str, sound_type: str) -> str:
        """First hit of library then providers, cached on success.

        Raises:
            ResolutionError: If no source produced a URL.
        """
        url, source = None, None
        if self.library is not None:
            url = self.library.search(query, sound_type)
            source = "library" if url else None

        for provider in self.providers:
            if url:
                break
            url = await self._attempt(provider, query, sound_type)
            source = provider.name if url else None

        if not url:
            raise ResolutionError(query, sound_type)

        self.resolutions.put(sound_type, query, url)
        self.stats.sources[source] = self.stats.sources.get(source, 0) + 1
        logger.debug(f"Resolved {sound_type} '{query}' via {source}")
        return url

    async def _attempt(self, provider: SearchProvider, query: str, sound_type: str) -> str | None:
        try:
            return await asyncio.wait_for(
                provider.search(query, sound_type),
                timeout=self.config.resolve_timeout_s,
            )
        except asyncio.TimeoutError:
            self.stats.timeouts += 1
            logger.warning(f"{provider.name} timed out resolving '{query}'")
        except Exception as e:
            logger.warning(f"{provider.name} failed resolving '{query}': {e}")
        return None

    # =========================================================================
    # Warming
    # =========================================================================

    async def load(self, url: str, epoch: Epoch | None = None) -> DecodedAsset:
        """Fetch and decode ``url`` (or take it from the cache).

        Concurrent loads of the same URL share one download.

        Raises:
            AssetLoadError: If the fetch or decode fails.
            StaleEpochError: If ``epoch`` went stale meanwhile. The decoded
                asset is still cached.
        """
        asset = self.assets.get(url)
        if asset is None:
            task = self._loading.get(url)
            if task is None:
                task = asyncio.get_running_loop().create_task(self._fetch_and_decode(url))
                self._loading[url] = task
                task.add_done_callback(lambda _t, u=url: self._loading.pop(u, None))
            asset = await asyncio.shield(task)

        self.epochs.check(epoch)
        return asset

    async def _fetch_and_decode(self, url: str) -> DecodedAsset:
        data = await self.fetcher.fetch(url)
        asset = await asyncio.to_thread(self._decoder, data, url)
        self.assets.put(asset)
        return asset

    async def warm(self, url: str, epoch: Epoch | None = None) -> DecodedAsset | None:
        """``load`` that reports failure as None."""
        try:
            return await self.load(url, epoch)
        except StaleEpochError:
            self.stats.stale += 1
            return None
        except AssetLoadError as e:
            self.stats.failed += 1
            logger.warning(e.message)
            return None

    def is_known(self, query: str, sound_type: str) -> bool:
        """True if the query is cached or already queued."""
        return (
            self.resolutions.contains(sound_type, query)
            or ResolutionCache.make_key(sound_type, query) in self._pending
        )

    def is_ready(self, query: str, sound_type: str) -> bool:
        """True if the query resolves to an already-decoded asset."""
        url = self.resolutions.get(sound_type, query)
        return url is not None and self.assets.contains(url)

    # =========================================================================
    # Worker pool
    # =========================================================================

    @property
    def concurrency(self) -> int:
        return self._concurrency

    def set_concurrency(self, concurrency: int) -> None:
        """Resize the pool. Surplus workers exit after their current task."""
        self._concurrency = max(1, int(concurrency))
        if self._queue is not None:
            self._ensure_workers()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, query: str, sound_type: str = "sfx", epoch: Epoch | None = None) -> bool:
        """Queue a resolve-and-warm task unless it is cached or in flight.

        Returns:
            True if a task was queued.
        """
        query = query.strip()
        if not query or self.is_ready(query, sound_type):
            return False
        task = PreloadTask(query=query, sound_type=sound_type, epoch=epoch)
        if task.key in self._pending:
            return False

        queue = self._ensure_queue()
        self._pending.add(task.key)
        queue.put_nowait(task)
        self.stats.submitted += 1
        self._ensure_workers()
        return True

    def preload(self, queries: Sequence[str], sound_type: str = "sfx", epoch: Epoch | None = None) -> int:
        """Submit a batch. Returns the number of tasks actually queued."""
        return sum(1 for q in queries if self.submit(q, sound_type, epoch))

    async def wait_for_preload(self, epoch: Epoch | None = None, timeout: float = 12.0) -> bool:
        """Wait until the queue is drained.

        Returns:
            True if everything finished within ``timeout`` and ``epoch`` is
            still current.
        """
        if self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                return False
        return self.epochs.is_current(epoch)

    async def close(self) -> None:
        """Stop the workers. Queued tasks are dropped."""
        for worker in self._workers:
            worker.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
        self._pending.clear()

    def clear(self) -> None:
        """Forget resolved URLs (decoded assets stay warm)."""
        self.resolutions.clear()

    def _ensure_queue(self) -> asyncio.Queue[PreloadTask]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def _ensure_workers(self) -> None:
        self._workers = [w for w in self._workers if not w.done()]
        loop = asyncio.get_running_loop()
        while len(self._workers) < self._concurrency:
            index = len(self._workers)
            self._workers.append(loop.create_task(self._worker(index)))

    async def _worker(self, index: int) -> None:
        queue = self._ensure_queue()
        while index < self._concurrency:
            task = await queue.get()
            try:
                await self._run(task)
            except DirectorError as e:
                self.stats.failed += 1
                logger.debug(f"Prefetch of '{task.query}' failed: {e.message}")
            except Exception as e:
                self.stats.failed += 1
                logger.warning(f"Prefetch of '{task.query}' failed: {e}")
            finally:
                self._pending.discard(task.key)
                self.stats.completed += 1
                queue.task_done()

    async def _run(self, task: PreloadTask) -> None:
        if not self.epochs.is_current(task.epoch):
            self.stats.stale += 1
            return
        url = await self.resolve(task.query, task.sound_type, task.epoch)
        if url is None:
            return
        self.stats.resolved += 1
        await self.warm(url, task.epoch)
