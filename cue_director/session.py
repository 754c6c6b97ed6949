"""
Session state - everything one listening session owns.

There are no module-level globals: the orchestrator holds exactly one
``SessionState`` and is its only writer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cue_director.config import DirectorConfig, DirectorMode, UserPreferences
from cue_director.epoch import EpochCounter
from cue_director.transcript.buffer import TranscriptBuffer


class SoundKind(Enum):
    MUSIC = "music"
    SFX = "sfx"


@dataclass
class ActiveSound:
    """A sound that is audible right now.

    Created when playback starts; removed on natural end, explicit stop
    or a forced fade-out.
    """
    handle: int
    category: str
    start_timestamp: float
    kind: SoundKind
    volume: float
    loop: bool = False
    name: str = ""

    def age(self, now: float) -> float:
        return now - self.start_timestamp


@dataclass(frozen=True)
class SoundSnapshot:
    name: str
    volume_percent: int


@dataclass(frozen=True)
class PlaybackSnapshot:
    """What is audible, for presentation."""
    active_music: SoundSnapshot | None = None
    active_sfx: tuple[SoundSnapshot, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        music = self.active_music
        return {
            "active_music": (
                {"name": music.name, "volume_percent": music.volume_percent} if music else None
            ),
            "active_sfx": [
                {"name": s.name, "volume_percent": s.volume_percent} for s in self.active_sfx
            ],
        }


@dataclass
class SessionState:
    """Session-scoped state of the director."""
    config: DirectorConfig = field(default_factory=DirectorConfig)
    prefs: UserPreferences = field(default_factory=UserPreferences)
    mode: DirectorMode = DirectorMode.AUTO
    epochs: EpochCounter = field(default_factory=EpochCounter)
    transcript: TranscriptBuffer | None = None
    active: dict[int, ActiveSound] = field(default_factory=dict)

    analysis_version: int = 0
    analysis_in_progress: bool = False
    last_analysis_time: float = float("-inf")
    last_predictive_time: float = float("-inf")
    recent_sounds: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.transcript is None:
            self.transcript = TranscriptBuffer(self.config.transcript_capacity)

    @property
    def music(self) -> ActiveSound | None:
        return next((s for s in self.active.values() if s.kind == SoundKind.MUSIC), None)

    @property
    def sfx(self) -> list[ActiveSound]:
        return [s for s in self.active.values() if s.kind == SoundKind.SFX]

    def remember_sound(self, name: str, limit: int = 20) -> None:
        if name in self.recent_sounds:
            self.recent_sounds.remove(name)
        self.recent_sounds.append(name)
        del self.recent_sounds[:-limit]

    def snapshot(self) -> PlaybackSnapshot:
        music = self.music
        return PlaybackSnapshot(
            active_music=(
                SoundSnapshot(music.name, round(music.volume * 100)) if music else None
            ),
            active_sfx=tuple(SoundSnapshot(s.name, round(s.volume * 100)) for s in self.sfx),
        )
