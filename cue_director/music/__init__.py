"""
Music module - Mood contexts and the music state machine.
"""

from cue_director.music.context import (
    MusicContext,
    KNOWN_MOODS,
    SMOOTH_PAIRS,
)

from cue_director.music.director import (
    MusicDirector,
    MusicPlan,
    MusicState,
    MusicTransition,
    music_volume,
)

__all__ = [
    "MusicContext",
    "KNOWN_MOODS",
    "SMOOTH_PAIRS",
    "MusicDirector",
    "MusicPlan",
    "MusicState",
    "MusicTransition",
    "music_volume",
]
