"""
Collaborator interfaces.

The director talks to the outside world through these protocols only:
remote sound search, the remote decision service, the catalog source and
the raw asset fetcher. Implementations convert their own failures into
``None``/exceptions from ``cue_director.errors``; none of them may raise
anything else past the scheduler or orchestrator boundary.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from cue_director.catalog import SoundCatalog


@runtime_checkable
class SearchProvider(Protocol):
    """Remote sound search: ``(query, type) -> url | None``."""

    @property
    def name(self) -> str:
        ...

    async def search(self, query: str, sound_type: str) -> str | None:
        ...


@runtime_checkable
class DecisionService(Protocol):
    """Remote analysis: transcript + mode + context -> raw decision mapping.

    Raises:
        QuotaExhaustedError: While the service asks us to back off.
    """

    async def analyze(self, transcript: str, mode: str, context: dict[str, Any]) -> dict[str, Any] | None:
        ...


@runtime_checkable
class CatalogProvider(Protocol):
    """Source of the asset catalog."""

    async def fetch_catalog(self) -> SoundCatalog:
        ...


@runtime_checkable
class AssetFetcher(Protocol):
    """Fetches encoded audio bytes for a URL.

    Raises:
        AssetLoadError: On any network or HTTP failure.
    """

    async def fetch(self, url: str) -> bytes:
        ...


class ManagedHttpClient:
    """Shared ``httpx.AsyncClient`` lifecycle: close only what we created."""

    def __init__(self, client: httpx.AsyncClient | None, timeout: float):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
