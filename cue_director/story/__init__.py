"""
Story module - Tokenization, loose matching and live story alignment.
"""

from cue_director.story.text import (
    tokenize,
    normalize_word,
    spoken_words,
    stem,
    eq_loose,
    STOP_WORDS,
    RECOVERY_STOP_WORDS,
)

from cue_director.story.aligner import (
    StoryAligner,
    StoryState,
    AlignResult,
)

__all__ = [
    "tokenize",
    "normalize_word",
    "spoken_words",
    "stem",
    "eq_loose",
    "STOP_WORDS",
    "RECOVERY_STOP_WORDS",
    "StoryAligner",
    "StoryState",
    "AlignResult",
]
