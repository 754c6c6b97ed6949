"""
Director configuration.

Defines the listening modes, the heuristic thresholds of the director, and
the user-adjustable preferences that bias playback.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class DirectorMode(Enum):
    """Listening mode. Drives preload sets, stingers and remote context."""

    BEDTIME = "bedtime"
    DND = "dnd"
    HORROR = "horror"
    CHRISTMAS = "christmas"
    HALLOWEEN = "halloween"
    SING = "sing"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: str | DirectorMode) -> DirectorMode:
        """Accept a mode or its name, falling back to AUTO for unknown names."""
        if isinstance(value, DirectorMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.AUTO


MODE_PRELOAD_SETS: dict[DirectorMode, tuple[str, ...]] = {
    DirectorMode.BEDTIME: (
        "dog bark", "cat meow", "door knock", "rain", "wind whoosh", "fire crackling",
        "owl hoot", "crickets", "soft footsteps", "page turn", "blanket rustle",
        "wood creak", "clock tick", "distant thunder", "water drip", "bird chirp",
        "lullaby chime", "toy bell", "piano soft", "heartbeat soft",
    ),
    DirectorMode.DND: (
        "sword clash", "arrow shot", "monster roar", "footsteps", "door creak", "thunder",
        "coin jingle", "spell cast", "magic whoosh", "shield block", "torch crackle",
        "crowd tavern", "horse gallop", "gate open", "dragon roar", "bow twang",
        "book page turn", "chain rattle", "door slam", "wind cave",
    ),
    DirectorMode.HORROR: (
        "door creak", "whisper", "heartbeat", "wind whoosh", "ghost boo", "witch cackle",
        "chain drag", "footsteps hallway", "breath heavy", "thunder distant", "scream far",
        "floorboard creak", "owl hoot", "metal scrape", "water drip", "clock tick",
        "radio static", "crow caw", "cat hiss", "wolf howl",
    ),
    DirectorMode.CHRISTMAS: (
        "jingle bells", "sleigh bells", "fire crackling", "children laugh", "wind arctic",
        "snow footsteps", "gift wrap", "door knock", "bell chime", "choir ahh",
        "reindeer bells", "door creak", "ice crackle", "wind whoosh", "glass clink",
        "street christmas", "crowd cheer", "applause", "laugh", "santa ho ho",
    ),
    DirectorMode.HALLOWEEN: (
        "witch cackle", "ghost boo", "wolf howl", "door creak", "thunder", "owl hoot",
        "chain rattle", "bat flutter", "cat hiss", "wind whoosh", "zombie groan",
        "crow caw", "footsteps leaves", "pumpkin squash", "monster roar", "scream far",
        "gate creak", "rain", "distant bells", "cauldron bubble",
    ),
    DirectorMode.SING: (
        "applause", "crowd cheer", "drum kick", "snare hit", "metronome click", "hi hat",
        "clap", "shaker", "tambourine", "airhorn short", "bass drop short", "reverb clap",
        "vocal ahh short", "vocal ohh short", "tap tempo click", "count in",
        "guitar strum", "piano chord", "sub drop", "riser short",
    ),
    DirectorMode.AUTO: (
        "dog bark", "door knock", "footsteps", "thunder", "fire crackling", "wind whoosh",
        "applause", "laugh", "scream", "metal crash", "water splash", "door slam",
        "heartbeat", "bird chirp", "cat meow", "car horn", "bell chime", "crowd murmur",
        "coin jingle", "keyboard typing",
    ),
}

GENERIC_PRELOAD_SET: tuple[str, ...] = (
    "dog bark", "door knock", "footsteps", "thunder", "fire crackling", "wind whoosh",
    "applause", "laugh", "scream", "metal crash", "water splash", "door slam",
    "heartbeat", "bird chirp", "cat meow", "bell chime", "coin jingle", "crow caw",
    "owl hoot", "chain rattle",
)

MODE_STINGERS: dict[DirectorMode, tuple[str, ...]] = {
    DirectorMode.BEDTIME: ("owl hoot", "wind whoosh", "fire crackling"),
    DirectorMode.DND: ("magic whoosh", "coin jingle", "torch crackle"),
    DirectorMode.HORROR: ("whisper", "heartbeat", "radio static"),
    DirectorMode.HALLOWEEN: ("witch cackle", "wolf howl", "door creak"),
    DirectorMode.CHRISTMAS: ("jingle bells", "bell chime", "wind arctic"),
    DirectorMode.SING: ("crowd cheer", "applause", "clap"),
    DirectorMode.AUTO: ("wind whoosh", "door creak", "footsteps"),
}


def preload_queries(mode: DirectorMode, cap: int = 20) -> list[str]:
    """Mode preload set merged with the generic set, deduplicated, capped."""
    merged = list(dict.fromkeys(MODE_PRELOAD_SETS.get(mode, MODE_PRELOAD_SETS[DirectorMode.AUTO])))
    for query in GENERIC_PRELOAD_SET:
        if query not in merged:
            merged.append(query)
    return merged[:cap]


def stingers_for(mode: DirectorMode) -> tuple[str, ...]:
    return MODE_STINGERS.get(mode, MODE_STINGERS[DirectorMode.AUTO])


@dataclass
class DirectorConfig:
    """Tunable thresholds for the director.

    Every heuristic constant lives here so tests can shrink timings and
    hosts can tune behaviour without touching the components.

    Example:
        config = DirectorConfig(
            music_change_threshold_s=20.0,
            max_simultaneous_sfx=2,
        )
        config = DirectorConfig.from_env()   # picks up backend URL / key
    """

    # Transcript
    transcript_capacity: int = 50
    """Number of final fragments kept in the rolling buffer."""

    recent_spoken_window: int = 30
    """Spoken words remembered by the story aligner."""

    # Story alignment
    recovery_lookahead: int = 40
    """Tokens scanned ahead when the aligner is stuck."""

    recovery_min_match: int = 3
    """Spoken words that must match before recovery jumps."""

    recovery_min_batch: int = 3
    """Smallest unmatched batch that triggers recovery."""

    prefetch_window: int = 80
    """Story tokens scanned for cue keywords after each advance."""

    # Effects
    cooldown_s: float = 3.5
    """Minimum gap between two plays of the same cooldown bucket."""

    max_simultaneous_sfx: int = 3
    """Cap on concurrently playing effects."""

    cull_age_s: float = 2.0
    """Effects older than this are faded out on a scene change."""

    cull_fade_s: float = 0.3
    """Fade-out used when culling."""

    min_volume: float = 0.2
    max_volume: float = 0.7
    """Output range for cue intensity (``calculate_volume``)."""

    # Music
    music_change_threshold_s: float = 30.0
    """Minimum time between incompatible music changes (unless forced)."""

    crossfade_s: float = 0.6
    """Music cross-fade length."""

    # Ducking
    duck_attack_s: float = 0.05
    duck_hold_s: float = 0.15
    duck_release_s: float = 0.35
    duck_floor: float = 0.25
    duck_floor_min: float = 0.01
    duck_sfx_hold_s: float = 0.6

    fade_step_s: float = 0.02
    """Granularity of gain ramps."""

    # Prefetch
    base_concurrency: int = 4
    low_latency_concurrency: int = 7
    resolve_timeout_s: float = 4.0
    """Upper bound on each remote resolution attempt."""

    preload_cap: int = 20
    alternates_limit: int = 2
    predictive_limit: int = 2
    predictive_debounce_s: float = 0.4

    # Remote analysis
    analysis_interval_s: float = 7.0
    analysis_min_context: int = 8
    analysis_context_finals: int = 10
    quota_backoff_s: float = 60.0
    catalog_ttl_s: float = 60.0
    http_timeout_s: float = 5.0
    analyze_timeout_s: float = 28.0

    # Stingers
    stinger_min_s: float = 20.0
    stinger_max_s: float = 45.0

    # Collaborators
    backend_url: str | None = None
    """Base URL of the catalog/decision backend."""

    freesound_api_key: str | None = None
    """Freesound API token (remote sound search)."""

    seed: int | None = None
    """Seed for rotation shuffles, stereo placement and stinger timing."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.transcript_capacity < 1:
            raise ValueError("transcript_capacity must be >= 1")
        if self.recovery_min_match < 1:
            raise ValueError("recovery_min_match must be >= 1")
        if self.max_simultaneous_sfx < 0:
            raise ValueError("max_simultaneous_sfx must be >= 0")
        if self.cooldown_s < 0:
            raise ValueError("cooldown_s must be >= 0")
        if self.base_concurrency < 1 or self.low_latency_concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.resolve_timeout_s <= 0:
            raise ValueError("resolve_timeout_s must be > 0")
        if not 0.0 <= self.min_volume <= self.max_volume <= 1.0:
            raise ValueError("volume range must satisfy 0 <= min_volume <= max_volume <= 1")
        if self.stinger_max_s < self.stinger_min_s:
            raise ValueError("stinger_max_s must be >= stinger_min_s")
        if self.backend_url:
            self.backend_url = self.backend_url.rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> DirectorConfig:
        """Build a config, reading collaborator settings from the environment.

        Environment:
            CUE_DIRECTOR_BACKEND_URL: Catalog/decision backend base URL.
            CUE_DIRECTOR_FREESOUND_KEY: Freesound API token.
        """
        overrides.setdefault("backend_url", os.environ.get("CUE_DIRECTOR_BACKEND_URL") or None)
        overrides.setdefault("freesound_api_key", os.environ.get("CUE_DIRECTOR_FREESOUND_KEY") or None)
        return cls(**overrides)

    def calculate_volume(self, intensity: float) -> float:
        """Map a 0..1 cue intensity onto the configured output range."""
        return self.min_volume + intensity * (self.max_volume - self.min_volume)

    def concurrency_for(self, low_latency: bool = False, network_type: str = "4g") -> int:
        """Worker-pool size for the current connection.

        3g lowers the base by one (floor 3), 2g by two (floor 2).
        """
        base = self.low_latency_concurrency if low_latency else self.base_concurrency
        network = (network_type or "4g").lower()
        if "2g" in network:
            return max(2, base - 2)
        if "3g" in network:
            return max(3, base - 1)
        return base


@dataclass
class UserPreferences:
    """Per-user playback preferences.

    Persistence belongs to the host; ``to_dict``/``from_dict`` give it a
    plain mapping to store.
    """

    music_enabled: bool = True
    sfx_enabled: bool = True
    prediction_enabled: bool = False
    music_level: float = 0.5
    sfx_level: float = 0.9
    mood_bias: float = 0.5
    """0 = calm, 1 = intense."""
    low_latency: bool = False
    network_type: str = "4g"
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.music_level = _clamp01(self.music_level)
        self.sfx_level = _clamp01(self.sfx_level)
        self.mood_bias = _clamp01(self.mood_bias)

    def adjust_music_level(self, delta: float) -> float:
        self.music_level = _clamp01(round(self.music_level + delta, 4))
        return self.music_level

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPreferences:
        """Build from a stored mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
