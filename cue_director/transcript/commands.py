"""
Voice commands spoken by the narrator ("skip track", "mute music", ...).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class CommandKind(Enum):
    SKIP_TRACK = "skip_track"
    MUSIC_UP = "music_up"
    MUSIC_DOWN = "music_down"
    MUTE_SFX = "mute_sfx"
    UNMUTE_SFX = "unmute_sfx"
    MUTE_MUSIC = "mute_music"
    UNMUTE_MUSIC = "unmute_music"
    SWITCH_MODE = "switch_mode"


@dataclass(frozen=True)
class VoiceCommand:
    kind: CommandKind
    mode: str | None = None


MUSIC_LEVEL_STEP = 0.1

_PATTERNS: tuple[tuple[CommandKind, re.Pattern], ...] = (
    (CommandKind.SKIP_TRACK, re.compile(r"\b(skip|next) (track|song|music)\b")),
    (CommandKind.MUSIC_DOWN, re.compile(r"\bquieter music\b|\bturn (the )?music down\b")),
    (CommandKind.MUSIC_UP, re.compile(r"\blouder music\b|\bturn (the )?music up\b")),
    (CommandKind.MUTE_SFX, re.compile(r"\bmute sfx\b|\bmute sound effects\b")),
    (CommandKind.UNMUTE_SFX, re.compile(r"\bunmute sfx\b|\bunmute sound effects\b")),
    (CommandKind.MUTE_MUSIC, re.compile(r"\bmute music\b")),
    (CommandKind.UNMUTE_MUSIC, re.compile(r"\bunmute music\b")),
)

_SWITCH_MODE = re.compile(r"\bswitch to (horror|christmas|halloween|dnd|bedtime|sing|auto)\b")


def parse_commands(text: str) -> list[VoiceCommand]:
    """All commands found in ``text``, in a fixed order.

    Example:
        parse_commands("okay, skip track and switch to horror")
        # [VoiceCommand(SKIP_TRACK), VoiceCommand(SWITCH_MODE, mode="horror")]
    """
    lowered = (text or "").lower()
    commands = [VoiceCommand(kind) for kind, pattern in _PATTERNS if pattern.search(lowered)]
    match = _SWITCH_MODE.search(lowered)
    if match:
        commands.append(VoiceCommand(CommandKind.SWITCH_MODE, mode=match.group(1)))
    return commands
