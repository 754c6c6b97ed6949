"""
Story Aligner - follow a narrator through a fixed text.

The aligner keeps a cursor into the tokenized story and moves it forward
as spoken words arrive. Speech recognition is noisy, so matching is loose,
short function words may be skipped, and when the narrator has clearly
jumped ahead the aligner searches a lookahead window for where they
resumed.

Invariants:
    - The cursor never moves backwards.
    - A batch that matches nothing near the cursor never moves it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Mapping

from cue_director.config import DirectorConfig
from cue_director.story.text import (
    RECOVERY_STOP_WORDS,
    STOP_WORDS,
    eq_loose,
    normalize_word,
    spoken_words,
    tokenize,
)

logger = logging.getLogger(__name__)


@dataclass
class StoryState:
    """Position inside an open story."""
    tokens: list[str] = field(default_factory=list)
    normalized_tokens: list[str] = field(default_factory=list)
    cursor_index: int = 0
    recent_spoken: deque[str] = field(default_factory=lambda: deque(maxlen=30))
    title: str = ""

    @classmethod
    def from_text(cls, text: str, title: str = "", recent_window: int = 30) -> StoryState:
        tokens = tokenize(text)
        return cls(
            tokens=tokens,
            normalized_tokens=[normalize_word(t) for t in tokens],
            recent_spoken=deque(maxlen=recent_window),
            title=title,
        )

    @property
    def at_end(self) -> bool:
        return not any(self.normalized_tokens[self.cursor_index:])


@dataclass
class AlignResult:
    """Outcome of feeding one fragment."""
    cursor: int
    advanced: int = 0
    matches: list[tuple[str, str]] = field(default_factory=list)
    """(story word, spoken word) for every matched word, in order."""
    recovered: bool = False
    prefetch: list[str] = field(default_factory=list)
    """Cue queries found in the prefetch window after an advance."""


class StoryAligner:
    """
    Align live speech to a story.

    Example:
        aligner = StoryAligner(cue_map=STORY_CUE_MAP)
        aligner.open("Once upon a time, a wolf knocked at the door.")

        result = aligner.feed("once upon a time")
        result.matches     # [("once", "once"), ("upon", "upon"), ...]
        aligner.current_word   # "a"
    """

    def __init__(self, config: DirectorConfig | None = None, cue_map: Mapping[str, str] | None = None):
        self.config = config or DirectorConfig()
        self.cue_map = dict(cue_map or {})
        self.state: StoryState | None = None

    @property
    def active(self) -> bool:
        return self.state is not None

    @property
    def cursor(self) -> int:
        return self.state.cursor_index if self.state else 0

    @property
    def current_word(self) -> str | None:
        """The next story word the narrator is expected to say."""
        if self.state is None:
            return None
        norm = self.state.normalized_tokens
        i = self._skip_empty(self.state.cursor_index)
        return norm[i] if i < len(norm) else None

    def open(self, text: str, title: str = "") -> list[str]:
        """Start following ``text``. Returns the initial prefetch queries."""
        self.state = StoryState.from_text(text, title, self.config.recent_spoken_window)
        self.state.cursor_index = self._skip_empty(0)
        logger.info(f"Story opened: {title or 'untitled'} ({len(self.state.tokens)} tokens)")
        return self.prefetch_window()

    def close(self) -> None:
        self.state = None

    def feed(self, text: str) -> AlignResult:
        """Advance the cursor with a transcript fragment."""
        if self.state is None:
            return AlignResult(cursor=0)

        state = self.state
        result = AlignResult(cursor=state.cursor_index)
        spoken = spoken_words(text)
        if not spoken:
            return result
        state.recent_spoken.extend(spoken)

        start = state.cursor_index
        i = start
        norm = state.normalized_tokens
        for word in spoken:
            j = self._match_from(i, word)
            if j is None:
                continue
            result.matches.append((norm[j], word))
            i = self._skip_empty(j + 1)

        if not result.matches and len(spoken) >= self.config.recovery_min_batch:
            recovered = self.recover(spoken)
            if recovered > start:
                logger.info(f"Story recovery: jumped from {start} to {recovered}")
                i = recovered
                result.recovered = True

        if i > start:
            state.cursor_index = i
            result.advanced = i - start
            result.prefetch = self.prefetch_window()

        result.cursor = state.cursor_index
        return result

    def recover(self, spoken: list[str]) -> int:
        """Search the lookahead window for where ``spoken`` resumes.

        The first offset at which at least ``min(recovery_min_match,
        len(spoken))`` spoken words match a run of story words wins. Inside
        the run, empty tokens and the recovery stop-words may be skipped;
        any other mismatch abandons the offset.

        Returns:
            Absolute index of the offset, or the current cursor if nothing
            matched.
        """
        state = self.state
        if state is None or not spoken:
            return self.cursor

        cursor = state.cursor_index
        window = state.normalized_tokens[cursor:cursor + self.config.recovery_lookahead]
        min_match = min(self.config.recovery_min_match, len(spoken))

        for offset in range(len(window) - min_match):
            matched = 0
            j = 0
            for k in range(offset, len(window)):
                if j >= len(spoken):
                    break
                token = window[k]
                if token == "":
                    continue
                if eq_loose(token, spoken[j]):
                    matched += 1
                    j += 1
                elif token in RECOVERY_STOP_WORDS:
                    continue
                else:
                    break
            if matched >= min_match:
                return cursor + offset
        return cursor

    def prefetch_window(self) -> list[str]:
        """Cue queries for keywords in the next ``prefetch_window`` tokens."""
        if self.state is None or not self.cue_map:
            return []
        start = self.state.cursor_index
        window = self.state.normalized_tokens[start:start + self.config.prefetch_window]
        queries: dict[str, None] = {}
        for token in window:
            query = self.cue_map.get(token) if token else None
            if query:
                queries.setdefault(query)
        return list(queries)

    def _skip_empty(self, i: int) -> int:
        norm = self.state.normalized_tokens
        while i < len(norm) and norm[i] == "":
            i += 1
        return i

    def _match_from(self, i: int, word: str) -> int | None:
        """Index of the story token matching ``word`` at the cursor.

        Stop-words at the cursor may be stepped over to find the match; if
        no match follows, nothing is consumed.
        """
        norm = self.state.normalized_tokens
        j = self._skip_empty(i)
        while j < len(norm):
            if eq_loose(norm[j], word):
                return j
            if norm[j] not in STOP_WORDS:
                return None
            j = self._skip_empty(j + 1)
        return None
