"""
Cooldown Ledger Tests.
"""

import pytest

from cue_director.runtime.cooldown import CooldownLedger, cooldown_bucket


class TestCooldownBucket:
    """Tests for cooldown_bucket."""

    @pytest.mark.parametrize("query,bucket", [
        ("door creak", "door"),
        ("Door Slam", "door"),
        ("footsteps gravel", "footsteps"),
        ("wind whoosh", "wind"),
        ("magic whoosh", "wind"),
        ("wolf howl", "wolf-howl"),
        ("jingle bells", "bells"),
        ("thunder storm", "thunder"),
        ("wood creak", "creak"),
        ("  cat   meow ", "cat meow"),
    ])
    def test_buckets(self, query, bucket):
        """Related queries share a bucket."""
        assert cooldown_bucket(query) == bucket


class TestCooldownLedger:
    """Tests for CooldownLedger."""

    def test_blocks_within_cooldown(self, clock):
        """Same bucket is blocked until the cooldown passes."""
        ledger = CooldownLedger(cooldown_s=3.5, clock=clock)
        ledger.record("door creak")

        clock.advance(3.4)
        assert not ledger.allowed("door slam")

        clock.advance(0.1)
        assert ledger.allowed("door slam")

    def test_other_buckets_unaffected(self, clock):
        """Unrelated buckets are independent."""
        ledger = CooldownLedger(clock=clock)
        ledger.record("door creak")

        assert ledger.allowed("dog bark")

    def test_remaining(self, clock):
        """remaining() counts down to zero."""
        ledger = CooldownLedger(cooldown_s=2.0, clock=clock)
        ledger.record("thunder")
        clock.advance(0.5)

        assert ledger.remaining("thunder") == pytest.approx(1.5)
        clock.advance(5)
        assert ledger.remaining("thunder") == 0.0

    def test_entries_never_cleaned(self, clock):
        """Expired entries stay in the ledger."""
        ledger = CooldownLedger(clock=clock)
        ledger.record("a")
        ledger.record("b")
        clock.advance(100)

        assert len(ledger) == 2
