"""
Audio output - The sink the mixer drives.

The mixer never touches a sound card directly; it starts, re-gains and
stops voices on an ``AudioOutput``. ``MemoryOutput`` records everything in
memory for tests and offline simulation.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable

from cue_director.runtime.audio import DecodedAsset

logger = logging.getLogger(__name__)


@runtime_checkable
class AudioOutput(Protocol):
    """Playback sink.

    ``gain`` is the final linear gain of the voice (voice × bus × master);
    ``pan`` is -1 (left) to 1 (right).
    """

    def start(
        self,
        asset: DecodedAsset,
        *,
        gain: float,
        pan: float = 0.0,
        loop: bool = False,
        on_end: Callable[[], None] | None = None,
    ) -> int:
        """Start a voice and return its handle."""
        ...

    def set_gain(self, handle: int, gain: float) -> None:
        ...

    def stop(self, handle: int) -> None:
        ...


@dataclass
class MemoryVoice:
    """A voice started on a MemoryOutput."""
    handle: int
    url: str
    gain: float
    pan: float
    loop: bool
    on_end: Callable[[], None] | None = None
    gain_history: list[float] = field(default_factory=list)
    stopped: bool = False


class MemoryOutput:
    """In-memory audio sink for testing.

    Produces no sound. Voices stay "playing" until ``finish`` (natural
    end) or ``stop`` is called.

    Example:
        out = MemoryOutput()
        handle = out.start(asset, gain=0.5)
        out.playing          # {handle: MemoryVoice(...)}
        out.finish(handle)   # fires on_end
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.voices: dict[int, MemoryVoice] = {}
        self.started: list[MemoryVoice] = []
        self._fail_next: Exception | None = None

    @property
    def name(self) -> str:
        return "memory"

    def fail_next_start(self, error: Exception | None = None) -> None:
        """Make the next ``start`` raise (simulates a playback error)."""
        self._fail_next = error or RuntimeError("playback failed")

    def start(
        self,
        asset: DecodedAsset,
        *,
        gain: float,
        pan: float = 0.0,
        loop: bool = False,
        on_end: Callable[[], None] | None = None,
    ) -> int:
        if self._fail_next is not None:
            error, self._fail_next = self._fail_next, None
            raise error

        handle = next(self._ids)
        voice = MemoryVoice(
            handle=handle,
            url=asset.url,
            gain=gain,
            pan=pan,
            loop=loop,
            on_end=on_end,
            gain_history=[gain],
        )
        self.voices[handle] = voice
        self.started.append(voice)
        return handle

    def set_gain(self, handle: int, gain: float) -> None:
        voice = self.voices.get(handle)
        if voice is not None and not voice.stopped:
            voice.gain = gain
            voice.gain_history.append(gain)

    def stop(self, handle: int) -> None:
        voice = self.voices.get(handle)
        if voice is not None:
            voice.stopped = True

    def finish(self, handle: int) -> None:
        """Simulate the voice reaching its natural end."""
        voice = self.voices.get(handle)
        if voice is None or voice.stopped:
            return
        voice.stopped = True
        if voice.on_end is not None:
            voice.on_end()

    @property
    def playing(self) -> dict[int, MemoryVoice]:
        return {h: v for h, v in self.voices.items() if not v.stopped}
