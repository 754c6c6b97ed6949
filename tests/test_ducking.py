"""
Ducking System Tests - Music bus gain envelope driven by effects.
"""

import asyncio
import warnings
from pathlib import Path

import numpy as np
import pytest

from cue_director.runtime import ducking
from cue_director.runtime.ducking import (
    DUCKING_STANDARD,
    DuckingController,
    DuckingEnvelope,
    gain_ramp,
    ramp_gain,
)


class TestDuckingEnvelope:
    """Tests for DuckingEnvelope dataclass."""

    def test_default_values(self):
        """Default envelope has the standard timings."""
        envelope = DuckingEnvelope()

        assert envelope.attack_s == 0.05
        assert envelope.release_s == 0.35
        assert envelope.floor == 0.25

    def test_floor_validation(self):
        """Floor outside 0.0-1.0 raises error."""
        with pytest.raises(ValueError, match="floor must be 0.0-1.0"):
            DuckingEnvelope(floor=1.5)

    def test_time_validation(self):
        """Negative times raise error."""
        with pytest.raises(ValueError, match="attack_s must be >= 0"):
            DuckingEnvelope(attack_s=-0.1)

    def test_duck_target(self):
        """Target is current × floor, never below floor_min."""
        envelope = DuckingEnvelope(floor=0.25)

        assert envelope.duck_target(0.8) == pytest.approx(0.2)
        assert envelope.duck_target(0.02, floor_min=0.01) == pytest.approx(0.01)

    def test_floor_multiplier_clamped(self):
        """Floor multipliers below 0.08 act as 0.08."""
        envelope = DuckingEnvelope(floor=0.0)
        assert envelope.duck_target(1.0) == pytest.approx(0.08)

    def test_for_mood(self):
        """Intense moods duck deeper and release later."""
        calm = DUCKING_STANDARD.for_mood(0.0)
        intense = DUCKING_STANDARD.for_mood(1.0)

        assert intense.floor < calm.floor
        assert intense.release_s == pytest.approx(0.45)
        assert calm.release_s == pytest.approx(0.35)

    def test_total(self):
        """total_s sums the stages."""
        envelope = DuckingEnvelope(attack_s=0.1, hold_s=0.2, release_s=0.3, sfx_hold_s=0.4)
        assert envelope.total_s == pytest.approx(1.0)


class TestGainRamp:
    """Tests for gain_ramp/ramp_gain."""

    def test_ramp_values(self):
        """Ramp excludes the start and ends exactly on the target."""
        np.testing.assert_allclose(gain_ramp(0.0, 1.0, 4), [0.25, 0.5, 0.75, 1.0])

    def test_ramp_gain_applies_steps(self):
        """ramp_gain calls apply once per step."""
        values = []
        asyncio.run(ramp_gain(values.append, 1.0, 0.0, duration_s=0.01, step_s=0.0025))

        assert len(values) == 4
        assert values[-1] == 0.0

    def test_zero_duration_jumps(self):
        """Zero duration applies the end value once."""
        values = []
        asyncio.run(ramp_gain(values.append, 1.0, 0.3, duration_s=0))
        assert values == [0.3]


class TestDuckingController:
    """Tests for DuckingController."""

    def make(self):
        state = {"gain": 1.0, "history": []}

        def set_gain(g):
            state["gain"] = g
            state["history"].append(g)

        controller = DuckingController(lambda: state["gain"], set_gain, step_s=0.001)
        return controller, state

    def test_envelope_restores(self):
        """The gain dips to the target and returns."""
        async def run():
            controller, state = self.make()
            envelope = DuckingEnvelope(attack_s=0.003, hold_s=0.0, release_s=0.003, floor=0.5, sfx_hold_s=0.0)
            assert controller.duck(envelope)
            await controller.wait()
            return state

        state = asyncio.run(run())
        assert min(state["history"]) == pytest.approx(0.5)
        assert state["gain"] == pytest.approx(1.0)

    def test_one_envelope_at_a_time(self):
        """Duck requests during an envelope are no-ops."""
        async def run():
            controller, _ = self.make()
            envelope = DuckingEnvelope(attack_s=0.0, hold_s=0.05, release_s=0.0, sfx_hold_s=0.0)
            first = controller.duck(envelope)
            second = controller.duck(envelope)
            await controller.wait()
            return first, second

        assert asyncio.run(run()) == (True, False)

    def test_cancel_restores(self):
        """Cancelling mid-envelope restores the original gain."""
        async def run():
            controller, state = self.make()
            controller.duck(DuckingEnvelope(attack_s=0.0, hold_s=1.0, release_s=0.0, floor=0.25, sfx_hold_s=0.0))
            await asyncio.sleep(0.01)
            ducked = state["gain"]
            controller.cancel()
            return ducked, state["gain"], controller.is_ducking

        ducked, restored, busy = asyncio.run(run())
        assert ducked == pytest.approx(0.25)
        assert restored == 1.0
        assert not busy


class TestModuleSource:
    """Tests for the module source itself."""

    def test_compiles_without_warnings(self):
        """The envelope diagram has no invalid escape sequences."""
        path = Path(ducking.__file__)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(path.read_text(encoding="utf-8"), str(path), "exec")
