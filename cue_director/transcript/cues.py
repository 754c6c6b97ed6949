"""
Cue Extractor - keyword tables and transcript → cue candidate.

Two tables drive instant effects:

- ``INSTANT_KEYWORDS``: scanned in order against every fragment; the first
  trigger word present wins and yields one high-priority cue.
- ``STORY_CUE_MAP``: consulted word by word as the story aligner advances.

The module also owns the small lookup tables for predictive prefetch
(cues likely to be needed soon) and alternates (variations warmed after
an effect plays so repeats don't sound identical).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cue_director.runtime.cooldown import cooldown_bucket
from cue_director.story.text import eq_loose, spoken_words

INSTANT_PRIORITY = 10
STORY_PRIORITY = 6
STORY_VOLUME = 0.7


@dataclass(frozen=True)
class CueCandidate:
    """A sound effect the transcript asked for."""
    category_key: str
    query: str
    priority: int
    volume: float

    @classmethod
    def make(cls, query: str, priority: int, volume: float) -> CueCandidate:
        return cls(
            category_key=cooldown_bucket(query),
            query=query,
            priority=priority,
            volume=volume,
        )


INSTANT_KEYWORDS: tuple[tuple[str, str, float], ...] = (
    ("bang", "gunshot explosion", 0.9),
    ("crash", "crash metal", 0.8),
    ("boom", "explosion boom", 0.9),
    ("thunder", "thunder storm", 0.8),
    ("scream", "scream horror", 0.7),
    ("roar", "monster roar", 0.8),
    ("growl", "monster growl", 0.8),
    ("snarl", "monster growl", 0.8),
    ("ogre", "monster growl", 0.8),
    ("troll", "monster growl", 0.8),
    ("orc", "monster growl", 0.8),
    ("goblin", "monster growl", 0.8),
    ("beast", "monster growl", 0.8),
    ("slam", "door slam", 0.7),
    ("splash", "water splash", 0.6),
    ("whoosh", "wind whoosh", 0.6),
    ("thud", "heavy thud", 0.7),
    # Everyday
    ("bark", "dog bark", 0.7),
    ("woof", "dog bark", 0.7),
    ("meow", "cat meow", 0.6),
    ("knock", "door knock", 0.7),
    ("footsteps", "footsteps", 0.6),
    ("footstep", "footsteps", 0.6),
    ("clap", "applause", 0.7),
    ("applause", "applause", 0.7),
    ("laugh", "laugh", 0.7),
    ("giggle", "laugh", 0.6),
    # Horror
    ("creak", "door creak", 0.6),
    ("whisper", "whisper breath", 0.5),
    ("heartbeat", "heartbeat", 0.6),
    # Christmas
    ("jingle", "jingle bells", 0.7),
    ("sleigh", "sleigh bells", 0.7),
    ("hohoho", "santa laugh ho ho", 0.8),
    # Halloween
    ("cackle", "witch cackle laugh", 0.7),
    ("boo", "ghost boo", 0.6),
    ("howl", "wolf howl", 0.7),
)
"""(trigger word, search query, volume), in priority order."""

STORY_CUE_MAP: dict[str, str] = {
    "bell": "bell chime",
    "bells": "bell chime",
    "clock": "tick tock",
    "midnight": "clock chime",
    "horse": "horse galloping",
    "horses": "horse galloping",
    "coach": "carriage creak",
    "step": "footsteps",
    "steps": "footsteps",
    "door": "door creak",
    "knock": "door knock",
    "wind": "wind whoosh",
    "storm": "thunder",
    "thunder": "thunder",
    "rain": "rain on windows",
    "owl": "owl hoot",
    "wolf": "wolf howl",
    "crowd": "crowd cheering",
    "applause": "applause",
    "fire": "fireplace",
    "flame": "fireplace",
    "witch": "witch cackle",
    "magic": "magic whoosh",
    "spell": "magic spell",
    "sword": "sword swing",
    "glass": "glass shatter",
    "mirror": "glass shatter",
    "beast": "monster growl",
    "dragon": "dragon growl",
    "heart": "heartbeat",
    "cry": "woman scream",
    "scream": "woman scream",
}
"""Normalized story word → search query."""

PREDICTIVE_CUES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(bark|woof)"), "dog bark"),
    (re.compile(r"\b(knock|door)"), "door knock"),
    (re.compile(r"\b(thunder|storm)"), "thunder"),
    (re.compile(r"\bfootsteps?\b"), "footsteps"),
    (re.compile(r"\bcreak"), "door creak"),
    (re.compile(r"\b(wind|whoosh)"), "wind whoosh"),
)

ALTERNATES: dict[str, tuple[str, ...]] = {
    "door creak": ("door squeak", "wood creak"),
    "wind whoosh": ("wind howl", "wind gust"),
    "footsteps": ("footsteps hallway", "footsteps gravel"),
    "wolf howl": ("dog howl", "coyote howl"),
    "witch cackle": ("creepy laugh", "evil laugh"),
    "thunder": ("thunder rumble", "lightning strike"),
}


def extract_cue(
    text: str,
    table: tuple[tuple[str, str, float], ...] = INSTANT_KEYWORDS,
) -> CueCandidate | None:
    """First instant cue whose trigger appears as a whole word in ``text``.

    Matching is case-insensitive and loose ("barked" triggers "bark").

    Example:
        extract_cue("the dog barked suddenly")
        # CueCandidate(category_key="dog bark", query="dog bark", priority=10, volume=0.7)
    """
    words = spoken_words(text)
    if not words:
        return None
    for trigger, query, volume in table:
        if any(eq_loose(word, trigger) for word in words):
            return CueCandidate.make(query, INSTANT_PRIORITY, volume)
    return None


def story_cue_query(word: str) -> str | None:
    return STORY_CUE_MAP.get(word)


def story_cue(word: str) -> CueCandidate | None:
    """Cue for a story word the narrator just read, if it has one."""
    query = story_cue_query(word)
    if query is None:
        return None
    return CueCandidate.make(query, STORY_PRIORITY, STORY_VOLUME)


def predictive_queries(text: str, limit: int = 2) -> list[str]:
    """Effects an interim fragment hints at, worth warming early."""
    lowered = (text or "").lower()
    found = [query for pattern, query in PREDICTIVE_CUES if pattern.search(lowered)]
    return found[:limit]


def alternates_for(query: str, limit: int = 2) -> list[str]:
    return list(ALTERNATES.get(query.lower(), ()))[:limit]
