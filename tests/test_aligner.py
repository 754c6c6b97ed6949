"""
Story Aligner Tests - Cursor movement, stop-word skipping and recovery.
"""

import random

from cue_director.config import DirectorConfig
from cue_director.story.aligner import StoryAligner, StoryState
from cue_director.transcript.cues import STORY_CUE_MAP

STORY = (
    "Once upon a time there was a little wolf who lived in the dark forest. "
    "Every night the wolf would howl at the moon, and the owl would answer. "
    "One night a storm came, and the door of the old cabin began to creak."
)


def make_aligner(text: str = STORY) -> StoryAligner:
    aligner = StoryAligner(DirectorConfig(), cue_map=STORY_CUE_MAP)
    aligner.open(text, title="wolf")
    return aligner


class TestStoryState:
    """Tests for StoryState."""

    def test_from_text(self):
        """Tokens and normalized tokens line up."""
        state = StoryState.from_text("Once upon.")
        assert state.tokens == ["Once", " ", "upon", "."]
        assert state.normalized_tokens == ["once", "", "upon", ""]

    def test_at_end(self):
        """at_end once only separators remain."""
        state = StoryState.from_text("Hi.")
        state.cursor_index = 1
        assert state.at_end


class TestFeed:
    """Tests for forward alignment."""

    def test_in_order(self):
        """Spoken words advance the cursor word by word."""
        aligner = make_aligner()
        result = aligner.feed("once upon a time")

        assert [m[0] for m in result.matches] == ["once", "upon", "a", "time"]
        assert aligner.current_word == "there"

    def test_skipped_word_does_not_advance(self):
        """'once' then 'time' leaves the cursor at 'upon'."""
        aligner = make_aligner("Once upon a time")
        aligner.feed("once")
        result = aligner.feed("time")

        assert aligner.current_word == "upon"
        assert result.advanced == 0
        assert result.matches == []

    def test_stop_words_skipped(self):
        """Stop-words at the cursor may be stepped over."""
        aligner = make_aligner()
        aligner.feed("once upon")
        aligner.feed("time")  # skips "a"

        assert aligner.current_word == "there"

    def test_loose_matching(self):
        """Recognizer variants still match."""
        aligner = make_aligner("The wolves howled")
        result = aligner.feed("the wolf howling")

        assert len(result.matches) == 3
        assert aligner.state.at_end

    def test_unmatched_batch_does_not_advance(self):
        """A 3+ word batch with nothing in the lookahead leaves the cursor."""
        aligner = make_aligner()
        before = aligner.cursor
        result = aligner.feed("banana pineapple mango papaya")

        assert aligner.cursor == before
        assert not result.recovered
        assert result.advanced == 0

    def test_cursor_never_moves_backwards(self):
        """Random noise and story words never move the cursor back."""
        rng = random.Random(3)
        vocabulary = ["once", "wolf", "night", "the", "owl", "storm", "door", "zebra", "moon", "and"]
        aligner = make_aligner()

        previous = aligner.cursor
        for _ in range(200):
            words = " ".join(rng.choice(vocabulary) for _ in range(rng.randint(1, 5)))
            aligner.feed(words)
            assert aligner.cursor >= previous
            previous = aligner.cursor

    def test_matches_report_story_words(self):
        """Matches pair story words with the spoken words."""
        aligner = make_aligner("The wolves ran")
        result = aligner.feed("the wolf")

        assert ("wolves", "wolf") in result.matches

    def test_closed_aligner_is_inert(self):
        """Feeding without an open story does nothing."""
        aligner = StoryAligner()
        result = aligner.feed("once upon a time")

        assert result.cursor == 0
        assert not aligner.active


class TestRecovery:
    """Tests for lookahead recovery."""

    def test_jump_ahead(self):
        """A narrator who skipped ahead is found again."""
        aligner = make_aligner()
        result = aligner.feed("lived in the dark forest")

        assert result.recovered
        assert aligner.current_word == "lived"

    def test_too_few_words(self):
        """Batches below the minimum never trigger recovery."""
        aligner = make_aligner()
        result = aligner.feed("dark forest")

        assert not result.recovered
        assert aligner.current_word == "once"

    def test_outside_lookahead(self):
        """Matches beyond the lookahead window are not jumped to."""
        config = DirectorConfig(recovery_lookahead=10)
        aligner = StoryAligner(config)
        aligner.open(STORY)
        result = aligner.feed("the owl would answer")

        assert not result.recovered
        assert aligner.current_word == "once"


class TestPrefetchWindow:
    """Tests for story-window prefetch."""

    def test_open_returns_queries(self):
        """Cue keywords near the start are prefetched on open."""
        aligner = StoryAligner(cue_map=STORY_CUE_MAP)
        queries = aligner.open("The door creaked in the wind")

        assert queries == ["door creak", "wind whoosh"]

    def test_window_moves_with_cursor(self):
        """Advancing returns the new window's queries."""
        aligner = StoryAligner(DirectorConfig(prefetch_window=6), cue_map=STORY_CUE_MAP)
        aligner.open("one two three four wolf")
        assert aligner.prefetch_window() == []

        result = aligner.feed("one two")
        assert result.prefetch == ["wolf howl"]

    def test_no_cue_map(self):
        """Without a cue map nothing is prefetched."""
        aligner = StoryAligner()
        assert aligner.open("the wolf") == []
