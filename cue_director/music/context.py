"""
Music context - the (mood, category) a track establishes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cue_director.catalog import CatalogEntry

KNOWN_MOODS: tuple[str, ...] = (
    "calm",
    "peaceful",
    "tense",
    "epic",
    "mysterious",
    "dark",
    "happy",
    "sad",
    "playful",
    "romantic",
    "dramatic",
    "spooky",
    "scary",
    "festive",
    "heroic",
    "melancholy",
    "upbeat",
    "eerie",
    "neutral",
)

SMOOTH_PAIRS: frozenset[frozenset[str]] = frozenset({
    frozenset({"calm", "peaceful"}),
    frozenset({"tense", "epic"}),
    frozenset({"mysterious", "dark"}),
})
"""Mood pairs that may cross-fade into each other at any time."""

_ID_SPLIT = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class MusicContext:
    """What a piece of music is "about"."""
    mood: str
    category: str

    @classmethod
    def from_track(cls, entry: CatalogEntry) -> MusicContext:
        """Derive mood and category from a track's tags, then its id.

        Mood is the first known mood among the tags (falling back to the id
        tokens, then "neutral"). Category is the first remaining tag
        (falling back to the first non-mood id token, then "general").
        """
        tags = [t.lower() for t in entry.tags if t]
        id_tokens = [t for t in _ID_SPLIT.split(entry.id.lower()) if t]

        mood = next((t for t in tags if t in KNOWN_MOODS), None)
        if mood is None:
            mood = next((t for t in id_tokens if t in KNOWN_MOODS), "neutral")

        category = next((t for t in tags if t not in KNOWN_MOODS), None)
        if category is None:
            category = next(
                (t for t in id_tokens if t not in KNOWN_MOODS and not t.isdigit()),
                "general",
            )
        return cls(mood=mood, category=category)

    def same_mood(self, other: MusicContext) -> bool:
        return self.mood == other.mood

    def compatible(self, other: MusicContext) -> bool:
        """Equal mood, equal category, or a smooth mood pair."""
        return (
            self.mood == other.mood
            or self.category == other.category
            or frozenset({self.mood, other.mood}) in SMOOTH_PAIRS
        )

    def related(self, other: MusicContext) -> bool:
        """Shares mood or category (rotation membership)."""
        return self.mood == other.mood or self.category == other.category
