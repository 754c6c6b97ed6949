"""
Provider Tests - Backend catalog/analysis and Freesound search over httpx.
"""

import asyncio
import json

import httpx
import pytest

from cue_director.errors import AssetLoadError, QuotaExhaustedError
from cue_director.providers.backend import BackendClient, HttpAssetFetcher
from cue_director.providers.freesound import FreesoundProvider, simplify_query

from conftest import CATALOG_ITEMS, ManualClock


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def preview(url: str, name: str = "x", license: str = "Creative Commons 0") -> dict:
    return {"id": 1, "name": name, "license": license, "previews": {"preview-hq-mp3": url}}


class TestBackendCatalog:
    """Tests for GET /sounds."""

    def test_wrapper_shape(self):
        """{sounds: [...]} payloads become a catalog."""
        def handler(request):
            assert request.url.path == "/sounds"
            return httpx.Response(200, json={"sounds": CATALOG_ITEMS})

        async def run():
            async with BackendClient("https://backend.example/", client=mock_client(handler)) as backend:
                return await backend.fetch_catalog()

        catalog = asyncio.run(run())
        assert len(catalog) == len(CATALOG_ITEMS)
        assert catalog.url_for("dog-bark") == "https://backend.example/sfx/dog-bark.wav"

    def test_list_shape_and_ttl(self):
        """Bare lists are accepted; results are cached for the TTL."""
        requests = []
        clock = ManualClock()

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=CATALOG_ITEMS[:2])

        async def run():
            backend = BackendClient("https://b", client=mock_client(handler), catalog_ttl_s=60, clock=clock)
            first = await backend.fetch_sounds()
            clock.advance(59)
            await backend.fetch_sounds()
            clock.advance(2)
            await backend.fetch_sounds()
            return first

        first = asyncio.run(run())
        assert len(first) == 2
        assert len(requests) == 2

    def test_failure_keeps_last_good(self):
        """A failing refresh serves the previous list."""
        clock = ManualClock()
        responses = [httpx.Response(200, json=CATALOG_ITEMS[:1]), httpx.Response(500)]

        async def run():
            backend = BackendClient("https://b", client=mock_client(lambda r: responses.pop(0)), clock=clock)
            await backend.fetch_sounds()
            clock.advance(120)
            return await backend.fetch_sounds()

        assert len(asyncio.run(run())) == 1

    def test_failure_without_cache(self):
        """With nothing cached a failure yields an empty list."""
        async def run():
            backend = BackendClient("https://b", client=mock_client(lambda r: httpx.Response(503)))
            return await backend.fetch_sounds()

        assert asyncio.run(run()) == []


class TestBackendAnalyze:
    """Tests for POST /analyze."""

    def test_request_body(self):
        """Transcript, mode and context are posted as JSON."""
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"scene": "forest", "music": None, "sfx": []})

        async def run():
            backend = BackendClient("https://b", client=mock_client(handler))
            return await backend.analyze("the wolf howled", "horror", {"moodBias": 0.5})

        decision = asyncio.run(run())
        assert decision["scene"] == "forest"
        assert bodies == [{"transcript": "the wolf howled", "mode": "horror", "context": {"moodBias": 0.5}}]

    def test_quota_backoff(self):
        """429 starts a backoff during which no request is made."""
        clock = ManualClock()
        requests = []
        responses = [httpx.Response(429), httpx.Response(200, json={"scene": "ok"})]

        def handler(request):
            requests.append(request)
            return responses.pop(0)

        async def run():
            backend = BackendClient("https://b", client=mock_client(handler), quota_backoff_s=60, clock=clock)
            with pytest.raises(QuotaExhaustedError) as first:
                await backend.analyze("text here", "auto", {})
            clock.advance(30)
            with pytest.raises(QuotaExhaustedError) as second:
                await backend.analyze("text here", "auto", {})
            clock.advance(30)
            decision = await backend.analyze("text here", "auto", {})
            return first.value, second.value, decision

        first, second, decision = asyncio.run(run())
        assert first.retry_after_s == 60
        assert second.retry_after_s == pytest.approx(30)
        assert decision == {"scene": "ok"}
        assert len(requests) == 2

    def test_errors_return_none(self):
        """Server errors and non-object bodies give None."""
        responses = [httpx.Response(500), httpx.Response(200, json=[1, 2]), httpx.Response(200, text="nope")]

        async def run():
            backend = BackendClient("https://b", client=mock_client(lambda r: responses.pop(0)))
            return [await backend.analyze("text", "auto", {}) for _ in range(3)]

        assert asyncio.run(run()) == [None, None, None]

    def test_empty_transcript(self):
        """An empty transcript is rejected before any request."""
        async def run():
            backend = BackendClient("https://b", client=mock_client(lambda r: httpx.Response(200)))
            await backend.analyze("  ", "auto", {})

        with pytest.raises(ValueError):
            asyncio.run(run())


class TestHttpAssetFetcher:
    """Tests for HttpAssetFetcher."""

    def test_fetch(self):
        """Bytes are returned as-is."""
        async def run():
            fetcher = HttpAssetFetcher(client=mock_client(lambda r: httpx.Response(200, content=b"RIFF")))
            return await fetcher.fetch("https://cdn/a.wav")

        assert asyncio.run(run()) == b"RIFF"

    def test_http_error(self):
        """HTTP failures become AssetLoadError."""
        async def run():
            fetcher = HttpAssetFetcher(client=mock_client(lambda r: httpx.Response(404)))
            await fetcher.fetch("https://cdn/missing.wav")

        with pytest.raises(AssetLoadError) as exc:
            asyncio.run(run())
        assert exc.value.url == "https://cdn/missing.wav"


class TestSimplifyQuery:
    """Tests for simplify_query."""

    def test_music_genres(self):
        """Music queries collapse onto broad genres."""
        assert simplify_query("Christmas cheer", "music") == (
            "christmas music",
            ["jingle bells", "holiday music", "festive music", "winter music"],
        )
        assert simplify_query("calm forest", "music")[0] == "calm ambient"
        assert simplify_query("weird stuff", "music") == ("ambient music", [])

    def test_sfx(self):
        """Effects are only rewritten for known combinations."""
        assert simplify_query("dragon roar loud", "sfx") == ("monster roar", [])
        assert simplify_query("door creak", "sfx") == ("door creak", [])


class TestFreesoundProvider:
    """Tests for FreesoundProvider."""

    def test_sfx_search(self):
        """CC0 effect search returns the first preview."""
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            assert request.headers["Authorization"] == "Token key"
            return httpx.Response(200, json={"results": [preview("https://fs/dog.mp3")]})

        async def run():
            provider = FreesoundProvider("key", client=mock_client(handler))
            return await provider.search("dog bark", "sfx")

        assert asyncio.run(run()) == "https://fs/dog.mp3"
        assert 'license:"Creative Commons 0"' in seen[0]["filter"]
        assert seen[0]["page_size"] == "3"

    def test_music_fallback_to_cc_by(self):
        """Music falls back to non-CC0 results when CC0 has none."""
        def handler(request):
            if "Creative Commons 0" in request.url.params["filter"]:
                return httpx.Response(200, json={"results": []})
            return httpx.Response(200, json={"results": [preview("https://fs/calm.mp3", license="Attribution")]})

        async def run():
            provider = FreesoundProvider("key", client=mock_client(handler))
            url = await provider.search("calm forest", "music")
            return url, provider.recently_played

        url, recent = asyncio.run(run())
        assert url == "https://fs/calm.mp3"
        assert recent == ["https://fs/calm.mp3"]

    def test_music_skips_recent(self):
        """Recently played music is skipped when there is an alternative."""
        results = [preview("https://fs/a.mp3"), preview("https://fs/b.mp3")]

        async def run():
            provider = FreesoundProvider(
                "key", client=mock_client(lambda r: httpx.Response(200, json={"results": results}))
            )
            first = await provider.search("calm", "music")
            second = await provider.search("calm", "music")
            return first, second

        assert asyncio.run(run()) == ("https://fs/a.mp3", "https://fs/b.mp3")

    def test_unauthorized_disables(self):
        """A 401 disables the provider for the session."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(401)

        async def run():
            provider = FreesoundProvider("bad", client=mock_client(handler))
            first = await provider.search("dog bark", "sfx")
            second = await provider.search("dog bark", "sfx")
            return first, second, provider.disabled

        assert asyncio.run(run()) == (None, None, True)
        assert len(requests) == 1

    def test_network_error(self):
        """Transport errors give None."""
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        async def run():
            provider = FreesoundProvider("key", client=mock_client(handler))
            return await provider.search("dog bark", "sfx")

        assert asyncio.run(run()) is None

    def test_no_key(self):
        """Without a key the provider is disabled."""
        assert FreesoundProvider("", client=mock_client(lambda r: httpx.Response(200))).disabled
