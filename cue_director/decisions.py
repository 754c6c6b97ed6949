"""
Decisions - typed view of what the remote decision service asked for.

The raw payload is ``{scene, music: {id, action, volume} | null,
sfx: [{id, when, volume}]}``. ``parse_decision`` validates its shape once,
at the boundary, and converts it into tagged variants so nothing further in
must cope with missing keys or ids the catalog has never heard of.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from cue_director.catalog import SoundCatalog, SoundType
from cue_director.errors import DecisionValidationError

logger = logging.getLogger(__name__)

DEFAULT_MUSIC_VOLUME = 0.5
DEFAULT_SFX_VOLUME = 0.7

FORCE_ACTIONS = frozenset({"change", "force", "switch"})
CONTINUE_ACTIONS = frozenset({"continue", "keep"})
STOP_ACTIONS = frozenset({"stop", "none"})


@dataclass(frozen=True)
class Continue:
    """Keep whatever is playing."""


@dataclass(frozen=True)
class ChangeTo:
    """Play ``track_id`` (or keep it if it is already playing)."""
    track_id: str
    volume: float = DEFAULT_MUSIC_VOLUME
    force: bool = False


@dataclass(frozen=True)
class NoMusic:
    """The decision carries no music instruction."""


MusicDecision = Union[Continue, ChangeTo, NoMusic]


@dataclass(frozen=True)
class SfxDecision:
    """Play catalog effect ``id``."""
    id: str
    volume: float = DEFAULT_SFX_VOLUME
    when: str = "now"


@dataclass(frozen=True)
class SceneDecision:
    """A whole validated decision."""
    scene: str = ""
    music: MusicDecision = NoMusic()
    sfx: tuple[SfxDecision, ...] = ()
    dropped: tuple[str, ...] = ()
    """Ids that were ignored (unknown or wrong type)."""


def _volume(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value != value:  # NaN
        return default
    return max(0.0, min(1.0, float(value)))


def _parse_music(raw: Any, catalog: SoundCatalog, dropped: list[str]) -> MusicDecision:
    if raw is None:
        return NoMusic()
    if not isinstance(raw, dict):
        raise DecisionValidationError("music", f"expected object or null, got {type(raw).__name__}")

    action = str(raw.get("action") or "play_or_continue").lower()
    track_id = raw.get("id")

    if action in CONTINUE_ACTIONS and not track_id:
        return Continue()
    if action in STOP_ACTIONS or not track_id:
        return NoMusic()
    if not isinstance(track_id, str):
        raise DecisionValidationError("music.id", f"expected string, got {type(track_id).__name__}")

    entry = catalog.get(track_id)
    if entry is None or entry.type != SoundType.MUSIC:
        logger.warning(f"Music ID not found in catalog: {track_id}")
        dropped.append(track_id)
        return NoMusic()

    return ChangeTo(
        track_id=track_id,
        volume=_volume(raw.get("volume"), DEFAULT_MUSIC_VOLUME),
        force=action in FORCE_ACTIONS,
    )


def _parse_sfx(raw: Any, catalog: SoundCatalog, dropped: list[str]) -> tuple[SfxDecision, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DecisionValidationError("sfx", f"expected list, got {type(raw).__name__}")

    result = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            dropped.append(repr(item))
            continue
        entry = catalog.get(item["id"])
        if entry is None or entry.type != SoundType.SFX:
            logger.warning(f"SFX ID not found in catalog: {item['id']}")
            dropped.append(item["id"])
            continue
        result.append(SfxDecision(
            id=item["id"],
            volume=_volume(item.get("volume"), DEFAULT_SFX_VOLUME),
            when=str(item.get("when") or "now"),
        ))
    return tuple(result)


def parse_decision(raw: Any, catalog: SoundCatalog) -> SceneDecision:
    """Validate a raw decision against the catalog.

    Unknown ids are dropped (and listed in ``dropped``); volumes are
    clamped to [0, 1] with defaults of 0.5 (music) and 0.7 (sfx).

    Raises:
        DecisionValidationError: If the payload's shape is not recognized.
    """
    if not isinstance(raw, dict):
        raise DecisionValidationError("decision", f"expected object, got {type(raw).__name__}")

    dropped: list[str] = []
    scene = raw.get("scene")
    return SceneDecision(
        scene=scene if isinstance(scene, str) else "",
        music=_parse_music(raw.get("music"), catalog, dropped),
        sfx=_parse_sfx(raw.get("sfx"), catalog, dropped),
        dropped=tuple(dropped),
    )
