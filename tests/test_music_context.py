"""
Music Context Tests - Mood/category derivation and compatibility.
"""

from cue_director.catalog import CatalogEntry, SoundType
from cue_director.music.context import MusicContext


def track(entry_id: str, *tags: str) -> CatalogEntry:
    return CatalogEntry(id=entry_id, type=SoundType.MUSIC, src=f"/{entry_id}.mp3", tags=tags, loop=True)


class TestFromTrack:
    """Tests for MusicContext.from_track."""

    def test_tags(self):
        """Mood and category come from the tags."""
        assert MusicContext.from_track(track("x", "forest", "calm")) == MusicContext("calm", "forest")

    def test_id_fallback(self):
        """Without tags, the id is used."""
        assert MusicContext.from_track(track("epic-battle-02")) == MusicContext("epic", "battle")

    def test_defaults(self):
        """Nothing recognizable gives neutral/general."""
        assert MusicContext.from_track(track("01")) == MusicContext("neutral", "general")


class TestCompatibility:
    """Tests for compatible/related."""

    def test_smooth_pairs_symmetric(self):
        """calm↔peaceful, tense↔epic and mysterious↔dark work both ways."""
        for a, b in [("calm", "peaceful"), ("tense", "epic"), ("mysterious", "dark")]:
            assert MusicContext(a, "x").compatible(MusicContext(b, "y"))
            assert MusicContext(b, "y").compatible(MusicContext(a, "x"))

    def test_same_category(self):
        """Equal categories are compatible whatever the mood."""
        assert MusicContext("calm", "forest").compatible(MusicContext("epic", "forest"))

    def test_incompatible(self):
        """Different mood and category, no pair."""
        assert not MusicContext("peaceful", "lake").compatible(MusicContext("epic", "battle"))

    def test_related_excludes_pairs(self):
        """Rotation membership needs a shared mood or category."""
        assert not MusicContext("calm", "forest").related(MusicContext("peaceful", "lake"))
        assert MusicContext("calm", "forest").related(MusicContext("calm", "meadow"))
