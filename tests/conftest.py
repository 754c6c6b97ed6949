"""
Shared test fixtures.

Provides:
    - A manual clock
    - WAV bytes generated with soundfile
    - Fake fetcher, search provider and decision service
    - A small catalog with music and effects
    - A config with near-zero fade timings
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import numpy as np
import pytest
import soundfile as sf

from cue_director.catalog import SoundCatalog
from cue_director.config import DirectorConfig, UserPreferences
from cue_director.errors import AssetLoadError


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def wav_bytes(duration_s: float = 0.1, amplitude: float = 0.2, sample_rate: int = 8000) -> bytes:
    """A short sine tone encoded as WAV."""
    t = np.arange(int(duration_s * sample_rate)) / sample_rate
    samples = (amplitude * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="WAV")
    return buffer.getvalue()


class FakeFetcher:
    """AssetFetcher returning a WAV tone for every URL.

    ``fail`` lists URLs that raise AssetLoadError. When ``gate`` is set,
    every fetch waits for it first.
    """

    def __init__(self, fail: set[str] | None = None, gate: asyncio.Event | None = None):
        self.calls: list[str] = []
        self.fail = fail or set()
        self.gate = gate
        self.started = asyncio.Event() if gate is not None else None

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if self.gate is not None:
            self.started.set()
            await self.gate.wait()
        if url in self.fail:
            raise AssetLoadError(url, f"Failed to fetch {url}")
        return wav_bytes()


class FakeProvider:
    """SearchProvider answering from a mapping (or a URL pattern)."""

    def __init__(self, name: str = "fake", results: dict[str, str] | None = None, delay: float = 0.0):
        self._name = name
        self.results = results
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    async def search(self, query: str, sound_type: str) -> str | None:
        self.calls.append((query, sound_type))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.results is not None:
                return self.results.get(query)
            return f"https://sfx.example/{query.replace(' ', '-')}.wav"
        finally:
            self.in_flight -= 1


class FakeDecisionService:
    """DecisionService returning queued decisions (or raising queued errors)."""

    def __init__(self, *responses: Any, gate: asyncio.Event | None = None):
        self.responses = list(responses)
        self.gate = gate
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    async def analyze(self, transcript: str, mode: str, context: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append((transcript, mode, context))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.pop(0) if self.responses else None
        if isinstance(response, Exception):
            raise response
        return response


CATALOG_ITEMS = [
    {"id": "calm-forest", "type": "music", "tags": ["calm", "forest"], "src": "/music/calm-forest.mp3"},
    {"id": "calm-meadow", "type": "music", "tags": ["calm", "meadow"], "src": "/music/calm-meadow.mp3"},
    {"id": "peaceful-lake", "type": "music", "tags": ["peaceful", "lake"], "src": "/music/peaceful-lake.mp3"},
    {"id": "epic-battle", "type": "music", "tags": ["epic", "battle"], "src": "/music/epic-battle.mp3"},
    {"id": "dark-cave", "type": "music", "tags": ["dark", "cave"], "src": "/music/dark-cave.mp3"},
    {"id": "dog-bark", "type": "sfx", "tags": ["dog", "bark"], "src": "/sfx/dog-bark.wav"},
    {"id": "door-creak", "type": "sfx", "tags": ["door", "creak"], "src": "/sfx/door-creak.wav"},
    {"id": "thunder-storm", "type": "sfx", "tags": ["thunder", "storm"], "src": "/sfx/thunder.wav"},
]

BASE_URL = "https://backend.example"


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def catalog():
    return SoundCatalog.from_payload({"sounds": CATALOG_ITEMS}, base_url=BASE_URL)


@pytest.fixture
def fast_config():
    """Real thresholds, (almost) instant fades."""
    return DirectorConfig(
        crossfade_s=0.0,
        cull_fade_s=0.0,
        duck_attack_s=0.0,
        duck_hold_s=0.0,
        duck_release_s=0.0,
        duck_sfx_hold_s=0.0,
        fade_step_s=0.001,
        seed=7,
    )


@pytest.fixture
def prefs():
    return UserPreferences()
