"""
Backend client - catalog (``GET /sounds``) and decisions (``POST /analyze``).

Also provides ``HttpAssetFetcher``, the plain HTTP fetcher used to warm
assets once a URL has been resolved.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from cue_director.catalog import SoundCatalog
from cue_director.errors import AssetLoadError, QuotaExhaustedError
from cue_director.providers.base import ManagedHttpClient

logger = logging.getLogger(__name__)


class BackendClient(ManagedHttpClient):
    """
    HTTP client for the catalog/decision backend.

    - ``/sounds`` is cached for ``catalog_ttl_s`` and accepts either a bare
      list or a ``{"sounds": [...]}`` wrapper.
    - ``/analyze`` answering 429 starts a backoff window; until it expires
      every call raises ``QuotaExhaustedError`` without touching the network.

    Example:
        async with BackendClient("https://backend.example") as backend:
            catalog = await backend.fetch_catalog()
            raw = await backend.analyze("the wolf howled", "horror", {})
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        catalog_ttl_s: float = 60.0,
        quota_backoff_s: float = 60.0,
        timeout_s: float = 5.0,
        analyze_timeout_s: float = 28.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(client, timeout_s)
        self.base_url = base_url.rstrip("/")
        self.catalog_ttl_s = catalog_ttl_s
        self.quota_backoff_s = quota_backoff_s
        self.timeout_s = timeout_s
        self.analyze_timeout_s = analyze_timeout_s
        self._clock = clock

        self._sounds: list[dict[str, Any]] | None = None
        self._sounds_at = 0.0
        self._cooldown_until = 0.0

    # =========================================================================
    # Catalog
    # =========================================================================

    async def fetch_sounds(self) -> list[dict[str, Any]]:
        """Raw catalog items, served from cache while fresh.

        On failure the last good list (or an empty one) is returned.
        """
        now = self._clock()
        if self._sounds is not None and now - self._sounds_at < self.catalog_ttl_s:
            return self._sounds

        try:
            response = await self.client.get(
                f"{self.base_url}/sounds",
                headers={"Cache-Control": "no-cache"},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Backend /sounds unavailable: {e}")
            return self._sounds or []

        if isinstance(data, dict):
            data = data.get("sounds")
        if not isinstance(data, list):
            logger.warning("Backend /sounds returned an unexpected shape")
            return self._sounds or []

        logger.info(f"Loaded {len(data)} sounds from backend")
        self._sounds = data
        self._sounds_at = self._clock()
        return data

    async def fetch_catalog(self) -> SoundCatalog:
        return SoundCatalog.from_payload(await self.fetch_sounds(), base_url=self.base_url)

    # =========================================================================
    # Decisions
    # =========================================================================

    @property
    def backoff_remaining_s(self) -> float:
        return max(0.0, self._cooldown_until - self._clock())

    async def analyze(self, transcript: str, mode: str, context: dict[str, Any]) -> dict[str, Any] | None:
        """Ask the backend for a decision.

        Returns:
            Raw decision mapping, or None on failure.

        Raises:
            QuotaExhaustedError: On 429, and for every call inside the
                backoff window that follows.
            ValueError: If the transcript is empty.
        """
        if not transcript or not transcript.strip():
            raise ValueError("Transcript is required")

        remaining = self.backoff_remaining_s
        if remaining > 0:
            raise QuotaExhaustedError("backend", remaining)

        try:
            response = await self.client.post(
                f"{self.base_url}/analyze",
                json={"transcript": transcript, "mode": mode, "context": context},
                timeout=self.analyze_timeout_s,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Backend /analyze unavailable: {e}")
            return None

        if response.status_code == 429:
            self._cooldown_until = self._clock() + self.quota_backoff_s
            raise QuotaExhaustedError("backend", self.quota_backoff_s, {"status": 429})

        if response.status_code >= 400:
            logger.warning(f"Backend /analyze returned {response.status_code}")
            return None

        try:
            decision = response.json()
        except ValueError as e:
            logger.warning(f"Backend /analyze returned invalid JSON: {e}")
            return None

        if not isinstance(decision, dict):
            logger.warning("Backend /analyze returned a non-object decision")
            return None
        return decision


class HttpAssetFetcher(ManagedHttpClient):
    """Download encoded audio bytes."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_s: float = 10.0):
        super().__init__(client, timeout_s)
        self.timeout_s = timeout_s

    async def fetch(self, url: str) -> bytes:
        try:
            response = await self.client.get(url, timeout=self.timeout_s)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AssetLoadError(url, f"Failed to fetch {url}: {e}") from e
        return response.content
