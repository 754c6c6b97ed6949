"""
Transcript module - Fragment buffering, cue extraction and voice commands.
"""

from cue_director.transcript.buffer import (
    TranscriptFragment,
    TranscriptBuffer,
)

from cue_director.transcript.cues import (
    CueCandidate,
    INSTANT_KEYWORDS,
    STORY_CUE_MAP,
    extract_cue,
    story_cue,
    predictive_queries,
    alternates_for,
)

from cue_director.transcript.commands import (
    CommandKind,
    VoiceCommand,
    parse_commands,
)

__all__ = [
    "TranscriptFragment",
    "TranscriptBuffer",
    "CueCandidate",
    "INSTANT_KEYWORDS",
    "STORY_CUE_MAP",
    "extract_cue",
    "story_cue",
    "predictive_queries",
    "alternates_for",
    "CommandKind",
    "VoiceCommand",
    "parse_commands",
]
