"""
Transcript Buffer Tests.
"""

from cue_director.transcript.buffer import TranscriptBuffer, TranscriptFragment


class TestTranscriptBuffer:
    """Tests for TranscriptBuffer."""

    def test_finals_appended(self):
        """Finals are stored in order."""
        buf = TranscriptBuffer()
        buf.add(TranscriptFragment("one", is_final=True))
        buf.add(TranscriptFragment("two", is_final=True))

        assert buf.finals == ["one", "two"]
        assert len(buf) == 2

    def test_capacity_evicts_oldest(self):
        """Past capacity the oldest final is dropped."""
        buf = TranscriptBuffer(capacity=3)
        for word in ["a", "b", "c", "d"]:
            buf.add(TranscriptFragment(word, is_final=True))

        assert buf.finals == ["b", "c", "d"]

    def test_interim_replaces_slot(self):
        """Interims only replace the single interim slot."""
        buf = TranscriptBuffer()
        buf.add(TranscriptFragment("once", is_final=False))
        buf.add(TranscriptFragment("once upon", is_final=False))

        assert buf.interim == "once upon"
        assert buf.finals == []

    def test_final_clears_interim(self):
        """A final clears the interim slot."""
        buf = TranscriptBuffer()
        buf.add(TranscriptFragment("once upon", is_final=False))
        buf.add(TranscriptFragment("once upon a time", is_final=True))

        assert buf.interim == ""
        assert buf.context_text() == "once upon a time"

    def test_context_text(self):
        """Context joins the last N finals and the interim."""
        buf = TranscriptBuffer()
        for text in ["a", "b", "c"]:
            buf.add(TranscriptFragment(text, is_final=True))
        buf.add(TranscriptFragment("d", is_final=False))

        assert buf.context_text(finals=2) == "b c d"

    def test_empty_fragment(self):
        """Whitespace-only fragments are empty."""
        assert TranscriptFragment("  ").is_empty
        assert not TranscriptFragment("x").is_empty

    def test_clear(self):
        """clear() forgets everything."""
        buf = TranscriptBuffer()
        buf.add(TranscriptFragment("a", is_final=True))
        buf.add(TranscriptFragment("b"))
        buf.clear()

        assert buf.context_text() == ""
