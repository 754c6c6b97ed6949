r"""
Ducking System - Music bus gain envelope driven by sound effects.

Whenever a sound effect starts, the music bus is pulled down so the effect
reads clearly, held there briefly, then released back to where it was.

Core insight: Ducking is a gain envelope on the music bus, not a change to
the track's own volume. Cross-fades and ducks therefore compose instead of
fighting over one number.

Envelope:

    gain
    1.0 ─┐                               ┌──────
         │\                             /
         │ \ attack          release  /
    duck │  └────────── hold ─────────┘
         t0

Semantics:
    - Target = max(floor_min, current × floor_multiplier)
    - floor_multiplier is clamped to [0.08, 1.0]
    - Only one envelope runs at a time; duck requests during an envelope are
      no-ops
    - Higher mood bias → deeper duck and slightly longer release

This belongs in runtime/, alongside the mixer that owns the bus.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuckingEnvelope:
    """Gain envelope applied to the music bus while an effect plays.

    Fields:
        attack_s: Time to fade from the current gain down to the duck target.
        hold_s: Time to stay at the duck target.
        release_s: Time to fade back up to the original gain.
        floor: Multiplier applied to the current gain to find the target.
        sfx_hold_s: Extra hold covering the typical length of an effect.
    """
    attack_s: float = 0.05
    hold_s: float = 0.15
    release_s: float = 0.35
    floor: float = 0.25
    sfx_hold_s: float = 0.6

    def __post_init__(self):
        if not 0.0 <= self.floor <= 1.0:
            raise ValueError(f"floor must be 0.0-1.0, got {self.floor}")
        for name in ("attack_s", "hold_s", "release_s", "sfx_hold_s"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    def for_mood(self, mood_bias: float) -> DuckingEnvelope:
        """Bias the envelope by mood (0 = calm, 1 = intense).

        More intense moods duck deeper and release slightly later; calmer
        moods keep more of the music audible.
        """
        m = min(1.0, max(0.0, mood_bias))
        return replace(
            self,
            release_s=self.release_s + m * 0.1,
            floor=min(1.0, self.floor * (0.8 + (1.0 - m) * 0.4)),
        )

    def duck_target(self, current: float, floor_min: float = 0.01) -> float:
        """Gain the bus fades down to from ``current``."""
        floor_mul = max(0.08, min(1.0, self.floor))
        return max(floor_min, current * floor_mul)

    @property
    def total_s(self) -> float:
        return self.attack_s + self.hold_s + self.sfx_hold_s + self.release_s


def gain_ramp(start: float, end: float, steps: int) -> np.ndarray:
    """Linear gain values from ``start`` (exclusive) to ``end`` (inclusive)."""
    steps = max(1, int(steps))
    return np.linspace(start, end, steps + 1, dtype=np.float64)[1:]


async def ramp_gain(
    apply: Callable[[float], None],
    start: float,
    end: float,
    duration_s: float,
    step_s: float = 0.02,
) -> None:
    """Fade a gain from ``start`` to ``end`` over ``duration_s``.

    ``apply`` is called once per step with the new gain. A zero duration
    jumps straight to ``end``.
    """
    if duration_s <= 0:
        apply(end)
        return

    steps = max(1, int(round(duration_s / max(step_s, 1e-4))))
    interval = duration_s / steps
    for value in gain_ramp(start, end, steps):
        await asyncio.sleep(interval)
        apply(float(value))


class DuckingController:
    """Runs at most one ducking envelope at a time against a gain.

    Usage:
        controller = DuckingController(
            get_gain=lambda: bus.gain,
            set_gain=mixer.set_music_bus_gain,
        )

        controller.duck(DUCKING_STANDARD.for_mood(0.7))   # starts envelope
        controller.duck(DUCKING_STANDARD)                 # no-op, busy
    """

    def __init__(
        self,
        get_gain: Callable[[], float],
        set_gain: Callable[[float], None],
        floor_min: float = 0.01,
        step_s: float = 0.02,
    ):
        self._get_gain = get_gain
        self._set_gain = set_gain
        self._floor_min = floor_min
        self._step_s = step_s
        self._task: asyncio.Task | None = None
        self._restore_to: float | None = None

    @property
    def is_ducking(self) -> bool:
        """True while an envelope is in progress."""
        return self._task is not None and not self._task.done()

    def duck(self, envelope: DuckingEnvelope) -> bool:
        """Start an envelope unless one is already running.

        Returns:
            True if a new envelope was started.
        """
        if self.is_ducking:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(envelope))
        return True

    async def _run(self, envelope: DuckingEnvelope) -> None:
        start = self._get_gain()
        target = envelope.duck_target(start, self._floor_min)
        self._restore_to = start
        try:
            await ramp_gain(self._set_gain, start, target, envelope.attack_s, self._step_s)
            await asyncio.sleep(envelope.hold_s + envelope.sfx_hold_s)
            await ramp_gain(self._set_gain, target, start, envelope.release_s, self._step_s)
        finally:
            self._restore_to = None

    def cancel(self) -> None:
        """Abort the running envelope and restore the original gain."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            if self._restore_to is not None:
                self._set_gain(self._restore_to)
                self._restore_to = None
        self._task = None

    async def wait(self) -> None:
        """Wait for the current envelope (if any) to finish."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug("Ducking envelope cancelled")


# =============================================================================
# Presets
# =============================================================================

DUCKING_STANDARD = DuckingEnvelope(attack_s=0.05, hold_s=0.15, release_s=0.35, floor=0.25)
"""Standard ducking - the base envelope before mood bias is applied."""


__all__ = [
    "DuckingEnvelope",
    "DuckingController",
    "gain_ramp",
    "ramp_gain",
    "DUCKING_STANDARD",
]
