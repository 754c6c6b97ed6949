"""
Freesound search provider.

Searches freesound.org for CC0 previews. Music queries are simplified to a
handful of broad genres that actually have CC0 results, with progressive
CC-BY fallbacks when nothing CC0 turns up.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any

import httpx

from cue_director.providers.base import ManagedHttpClient

logger = logging.getLogger(__name__)

FREESOUND_SEARCH_URL = "https://freesound.org/apiv2/search/text/"
CC0_FILTER = 'license:"Creative Commons 0"'
MUSIC_FILTER = "duration:[30 TO *] tag:music"
SFX_FILTER = "duration:[0.5 TO 10]"
FIELDS = "id,name,previews,duration,license"

_MUSIC_RULES: tuple[tuple[tuple[str, ...], str, tuple[str, ...]], ...] = (
    (("christmas", "holiday", "festive", "xmas", "jingle", "carol", "sleigh"),
     "christmas music", ("jingle bells", "holiday music", "festive music", "winter music")),
    (("halloween", "spooky"), "spooky halloween", ("halloween music", "spooky music")),
    (("epic", "orchestral"), "epic orchestral", ("orchestral", "epic music")),
    (("calm", "peaceful"), "calm ambient", ("peaceful music", "ambient music")),
    (("tense", "suspense"), "dark ambient", ("suspense music", "ambient music")),
    (("horror", "eerie"), "horror ambience", ("dark ambient", "ambient music")),
    (("forest", "nature"), "nature ambient", ("ambient music",)),
    (("sing", "vocal", "melody"), "instrumental backing", ("instrumental", "ambient music")),
)

_SFX_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("footsteps", "leaves"), "footsteps grass"),
    (("dragon", "roar"), "monster roar"),
    (("birds", "chirp"), "birds chirping"),
    (("storm", "brewing"), "thunder storm"),
)


def simplify_query(query: str, sound_type: str) -> tuple[str, list[str]]:
    """Rewrite a query into one that tends to find CC0 results.

    Returns:
        (search query, fallback queries). Fallbacks only exist for music.
    """
    keywords = query.lower()
    if sound_type == "music":
        for triggers, search, fallbacks in _MUSIC_RULES:
            if any(t in keywords for t in triggers):
                return search, list(fallbacks)
        return "ambient music", []

    for required, search in _SFX_RULES:
        if all(r in keywords for r in required):
            return search, []
    return query, []


def _preview_url(result: dict[str, Any]) -> str | None:
    previews = result.get("previews") or {}
    return previews.get("preview-hq-mp3") or previews.get("preview-lq-mp3")


class FreesoundProvider(ManagedHttpClient):
    """
    ``SearchProvider`` backed by the Freesound text search API.

    A 401 disables the provider for the rest of the session. Music results
    skip URLs among the last ``recent_limit`` picks when an alternative
    exists.

    Example:
        provider = FreesoundProvider(api_key="...")
        url = await provider.search("wolf howl", "sfx")
    """

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 5.0,
        recent_limit: int = 20,
        search_url: str = FREESOUND_SEARCH_URL,
    ):
        super().__init__(client, timeout_s)
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.recent_limit = recent_limit
        self.search_url = search_url
        self.disabled = not api_key
        self._recent: OrderedDict[str, None] = OrderedDict()

    @property
    def name(self) -> str:
        return "freesound"

    @property
    def recently_played(self) -> list[str]:
        return list(self._recent)

    def remember(self, url: str) -> None:
        self._recent[url] = None
        self._recent.move_to_end(url)
        while len(self._recent) > self.recent_limit:
            self._recent.popitem(last=False)

    async def search(self, query: str, sound_type: str) -> str | None:
        if self.disabled:
            return None

        search_query, fallbacks = simplify_query(query, sound_type)
        if search_query != query:
            logger.debug(f"Simplified {sound_type} query: '{query}' -> '{search_query}'")

        try:
            base_filter = MUSIC_FILTER if sound_type == "music" else SFX_FILTER
            results = await self._query(
                search_query,
                f"{base_filter} {CC0_FILTER}",
                page_size=10 if sound_type == "music" else 3,
            )
            if results:
                return self._choose(results, sound_type)

            if sound_type == "music":
                for attempt in [search_query, *fallbacks]:
                    results = await self._query(attempt, MUSIC_FILTER, page_size=10)
                    url = _preview_url(results[0]) if results else None
                    if url:
                        logger.info(f"Found music ({results[0].get('license')}): {results[0].get('name')}")
                        self.remember(url)
                        return url
                logger.debug("No music found after all fallbacks")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Freesound search failed for '{search_query}': {e}")
            return None

    async def _query(self, query: str, filter_: str, page_size: int) -> list[dict[str, Any]]:
        response = await self.client.get(
            self.search_url,
            params={
                "query": query,
                "filter": filter_,
                "fields": FIELDS,
                "sort": "rating_desc",
                "page_size": page_size,
            },
            headers={"Authorization": f"Token {self.api_key}"},
            timeout=self.timeout_s,
        )
        if response.status_code == 401:
            logger.error("Invalid Freesound API key, disabling provider")
            self.disabled = True
            return []
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError:
            return []
        results = data.get("results") if isinstance(data, dict) else None
        return results if isinstance(results, list) else []

    def _choose(self, results: list[dict[str, Any]], sound_type: str) -> str | None:
        chosen = None
        for result in results:
            url = _preview_url(result)
            if not url:
                continue
            if sound_type == "music" and url in self._recent:
                continue
            chosen = url
            break
        if chosen is None:
            chosen = _preview_url(results[0])
        if chosen:
            self.remember(chosen)
        return chosen
