"""
Music Director - decide when the music should change, and to what.

States:

    Idle ──ChangeTo──▶ Playing(context) ──compatible──▶ Playing(context')
                          │
                          └─incompatible, elapsed ≥ threshold or force─▶ Playing(new)

Rules:
    - Equal moods never trigger a change, however much time has passed.
    - Compatible moods (same category, or a smooth pair such as
      calm ↔ peaceful) cross-fade immediately.
    - Incompatible moods wait until ``music_change_threshold_s`` has passed
      since the last change; ``force`` bypasses the wait.
    - Entering a context builds a shuffled rotation of related tracks;
      rotation only advances on request (track ended, "skip track").

Deciding and committing are separate steps. ``decide`` never touches
state; the orchestrator plays the plan and then calls ``commit`` (or
``reject`` if the track could not be played), so a failed load leaves the
director exactly where it was.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from cue_director.catalog import CatalogEntry, SoundCatalog
from cue_director.config import DirectorConfig
from cue_director.decisions import ChangeTo, Continue, MusicDecision, NoMusic
from cue_director.music.context import MusicContext

logger = logging.getLogger(__name__)


class MusicTransition(Enum):
    """What a plan asks the mixer to do."""
    START = "start"
    CHANGE = "change"
    SMOOTH = "smooth"
    ROTATE = "rotate"
    CONTINUE = "continue"
    HOLD = "hold"
    BLOCKED = "blocked"

    @property
    def plays(self) -> bool:
        """True if the plan starts a new track."""
        return self in (
            MusicTransition.START,
            MusicTransition.CHANGE,
            MusicTransition.SMOOTH,
            MusicTransition.ROTATE,
        )


@dataclass(frozen=True)
class MusicPlan:
    """Outcome of ``decide``/``advance_rotation``."""
    transition: MusicTransition
    track_id: str | None = None
    context: MusicContext | None = None
    volume: float = 0.0
    base_volume: float = 0.5
    reason: str = ""
    rotation_queue: tuple[str, ...] | None = None
    rotation_index: int = 0


@dataclass
class MusicState:
    """Owned by the director; only ``commit`` writes it."""
    current_track_id: str | None = None
    context: MusicContext | None = None
    rotation_queue: list[str] = field(default_factory=list)
    rotation_index: int = 0
    last_change_timestamp: float = float("-inf")
    base_volume: float = 0.5

    @property
    def is_playing(self) -> bool:
        return self.current_track_id is not None


def music_volume(requested: float, mood_bias: float = 0.5, music_level: float = 1.0) -> float:
    """``clamp(requested × (0.85 + bias × 0.3) × level, 0, 1)``."""
    mood_mul = 0.85 + mood_bias * 0.3
    return max(0.0, min(1.0, requested * mood_mul * music_level))


class MusicDirector:
    """
    Mood state machine with rotation.

    Example:
        director = MusicDirector(catalog, DirectorConfig(), rng=random.Random(7))

        plan = director.decide(ChangeTo("calm-forest", 0.5), now=0.0)
        # ... play plan.track_id at plan.volume ...
        director.commit(plan, now=0.0)

        director.decide(ChangeTo("battle-drums"), now=5.0).transition
        # MusicTransition.BLOCKED (incompatible, under threshold)
    """

    def __init__(
        self,
        catalog: SoundCatalog,
        config: DirectorConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.config = config or DirectorConfig()
        self._rng = rng or random.Random(self.config.seed)
        self._clock = clock
        self.state = MusicState()

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    # =========================================================================
    # Deciding
    # =========================================================================

    def decide(
        self,
        decision: MusicDecision,
        now: float | None = None,
        mood_bias: float = 0.5,
        music_level: float = 1.0,
    ) -> MusicPlan:
        """Turn a decision into a plan. Never mutates state."""
        now = self._clock() if now is None else now
        state = self.state

        if isinstance(decision, NoMusic):
            return MusicPlan(MusicTransition.HOLD, reason="no music requested")
        if isinstance(decision, Continue):
            if state.is_playing:
                return self._continue("continue requested")
            return MusicPlan(MusicTransition.HOLD, reason="nothing playing")
        if not isinstance(decision, ChangeTo):
            raise TypeError(f"Unknown music decision: {decision!r}")

        entry = self.catalog.get(decision.track_id)
        if entry is None:
            return MusicPlan(MusicTransition.BLOCKED, reason=f"unknown track {decision.track_id}")

        target = MusicContext.from_track(entry)
        volume = music_volume(decision.volume, mood_bias, music_level)

        def plan(transition: MusicTransition, reason: str) -> MusicPlan:
            queue = self._build_rotation(entry, target)
            return MusicPlan(
                transition=transition,
                track_id=entry.id,
                context=target,
                volume=volume,
                base_volume=decision.volume,
                reason=reason,
                rotation_queue=tuple(queue),
                rotation_index=0,
            )

        if not state.is_playing:
            return plan(MusicTransition.START, "idle")

        if entry.id == state.current_track_id:
            return self._continue("already playing")

        current = state.context
        if current is not None and current.same_mood(target):
            return self._continue(f"same mood ({target.mood})")

        if current is not None and current.compatible(target):
            return plan(MusicTransition.SMOOTH, f"{current.mood} -> {target.mood} (compatible)")

        elapsed = now - state.last_change_timestamp
        if decision.force:
            return plan(MusicTransition.CHANGE, "forced")
        if elapsed >= self.config.music_change_threshold_s:
            return plan(MusicTransition.CHANGE, f"{elapsed:.1f}s since last change")

        return MusicPlan(
            MusicTransition.BLOCKED,
            track_id=entry.id,
            context=target,
            reason=f"only {elapsed:.1f}s since last change",
        )

    def advance_rotation(self, mood_bias: float = 0.5, music_level: float = 1.0) -> MusicPlan | None:
        """Plan the next track of the rotation.

        Returns:
            A ROTATE plan, or None if there is nothing else to rotate to.
        """
        state = self.state
        if not state.is_playing:
            return None
        queue = [t for t in state.rotation_queue if t in self.catalog]
        if not queue or queue == [state.current_track_id]:
            return None

        index = state.rotation_index
        if index >= len(queue):
            queue = self._shuffled(queue, avoid_first=state.current_track_id)
            index = 0
        if queue[index] == state.current_track_id:
            index += 1
            if index >= len(queue):
                queue = self._shuffled(queue, avoid_first=state.current_track_id)
                index = 0

        track_id = queue[index]
        return MusicPlan(
            transition=MusicTransition.ROTATE,
            track_id=track_id,
            context=state.context,
            volume=music_volume(state.base_volume, mood_bias, music_level),
            base_volume=state.base_volume,
            reason="rotation",
            rotation_queue=tuple(queue),
            rotation_index=index + 1,
        )

    # =========================================================================
    # Committing
    # =========================================================================

    def commit(self, plan: MusicPlan, now: float | None = None) -> None:
        """Record that ``plan`` is now audible."""
        if not plan.transition.plays:
            return
        now = self._clock() if now is None else now
        state = self.state
        state.current_track_id = plan.track_id
        state.base_volume = plan.base_volume
        if plan.rotation_queue is not None:
            state.rotation_queue = list(plan.rotation_queue)
            state.rotation_index = plan.rotation_index
        if plan.transition != MusicTransition.ROTATE:
            state.context = plan.context
            state.last_change_timestamp = now
        logger.info(f"Music {plan.transition.value}: {plan.track_id} ({plan.reason})")

    def reject(self, plan: MusicPlan, reason: str) -> None:
        """The plan could not be played; state stays as it was."""
        logger.warning(f"Music {plan.transition.value} to {plan.track_id} dropped: {reason}")

    def reset(self) -> None:
        """Back to Idle (music muted, mode changed, everything stopped)."""
        self.state = MusicState()

    # =========================================================================
    # Internals
    # =========================================================================

    def _continue(self, reason: str) -> MusicPlan:
        return MusicPlan(
            MusicTransition.CONTINUE,
            track_id=self.state.current_track_id,
            context=self.state.context,
            reason=reason,
        )

    def _build_rotation(self, trigger: CatalogEntry, context: MusicContext) -> list[str]:
        """Related music, shuffled, with ``trigger`` kept off the head."""
        related = [
            e.id for e in self.catalog.music
            if e.id == trigger.id or MusicContext.from_track(e).related(context)
        ]
        return self._shuffled(related, avoid_first=trigger.id)

    def _shuffled(self, ids: list[str], avoid_first: str | None) -> list[str]:
        queue = list(ids)
        self._rng.shuffle(queue)
        if len(queue) > 1 and queue[0] == avoid_first:
            queue.append(queue.pop(0))
        return queue
