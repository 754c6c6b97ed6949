"""
Mix Engine - Buses, voices, cross-fades and ducking.

Features:
    - Music, sfx and master buses
    - Music cross-fade (old out, new in, concurrently)
    - Music ducking while effects play
    - Loudness-normalized effects with random stereo placement
    - Soft-knee compression of the sfx bus

The engine owns the voices on the ``AudioOutput``; the orchestrator owns
the bookkeeping of what is "active" and calls in here to make it audible.
Every fade runs as a background task on the running event loop.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from cue_director.config import DirectorConfig
from cue_director.errors import AssetLoadError
from cue_director.runtime.audio import DecodedAsset, Compressor, SFX_COMPRESSOR
from cue_director.runtime.ducking import DuckingController, DuckingEnvelope, ramp_gain
from cue_director.runtime.output import AudioOutput

logger = logging.getLogger(__name__)

DEFAULT_SFX_RMS = 0.1


class VoiceKind(Enum):
    """What a voice is playing."""
    MUSIC = "music"
    SFX = "sfx"


@dataclass
class Bus:
    """A gain stage shared by several voices."""
    name: str
    gain: float = 1.0


@dataclass
class Voice:
    """A playing asset on the output."""
    handle: int
    kind: VoiceKind
    name: str
    asset: DecodedAsset
    volume: float
    """Target voice gain."""
    gain: float
    """Current voice gain (moves during fades)."""
    loop: bool = False
    started_at: float = 0.0
    pan: float = 0.0
    releasing: bool = False

    @property
    def norm_gain(self) -> float:
        return self.asset.norm_gain if self.kind == VoiceKind.SFX else 1.0


class MixEngine:
    """
    Drive an AudioOutput with bus-level mixing.

    Example:
        engine = MixEngine(MemoryOutput(), DirectorConfig())

        engine.play_music(asset, name="calm-forest", volume=0.45)
        engine.play_sfx(door, name="door creak", volume=0.7,
                        envelope=DUCKING_STANDARD.for_mood(0.5))

        await engine.drain()   # wait for pending fades
    """

    def __init__(
        self,
        output: AudioOutput,
        config: DirectorConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        compressor: Compressor = SFX_COMPRESSOR,
    ):
        self.output = output
        self.config = config or DirectorConfig()
        self._rng = rng or random.Random(self.config.seed)
        self._clock = clock
        self._compressor = compressor

        self.music_bus = Bus("music")
        self.sfx_bus = Bus("sfx")
        self.master_bus = Bus("master")

        self._voices: dict[int, Voice] = {}
        self._music: Voice | None = None
        self._tasks: set[asyncio.Task] = set()

        self.ducker = DuckingController(
            get_gain=lambda: self.music_bus.gain,
            set_gain=self.set_music_bus_gain,
            floor_min=self.config.duck_floor_min,
            step_s=self.config.fade_step_s,
        )

    # =========================================================================
    # Music
    # =========================================================================

    def play_music(
        self,
        asset: DecodedAsset,
        name: str,
        volume: float,
        loop: bool = True,
        on_end: Callable[[int], None] | None = None,
    ) -> int:
        """Cross-fade from the current track (if any) to ``asset``.

        The new voice starts at zero gain and fades to ``volume`` while the
        old voice fades to zero and is released, both over the configured
        cross-fade time.

        Raises:
            AssetLoadError: If the output refuses to start the voice.
        """
        volume = _clamp01(volume)
        handle = self._start(asset, VoiceKind.MUSIC, name, 0.0, 0.0, loop, on_end)
        voice = self._voices[handle]
        voice.volume = volume

        old = self._music
        self._music = voice

        fade = self.config.crossfade_s
        self._spawn(self._fade_voice(voice, 0.0, volume, fade))
        if old is not None:
            self._release(old, fade)

        logger.info(f"Playing music: {name} at {round(volume * 100)}%")
        return handle

    def stop_music(self, fade_s: float | None = None) -> bool:
        """Fade out and release the current track."""
        if self._music is None:
            return False
        voice, self._music = self._music, None
        self._release(voice, self.config.crossfade_s if fade_s is None else fade_s)
        return True

    def set_music_volume(self, volume: float) -> None:
        """Jump the current track's voice gain to ``volume``."""
        if self._music is None:
            return
        self._music.volume = _clamp01(volume)
        self._set_voice_gain(self._music, self._music.volume)

    # =========================================================================
    # Effects
    # =========================================================================

    def play_sfx(
        self,
        asset: DecodedAsset,
        name: str,
        volume: float,
        envelope: DuckingEnvelope | None = None,
        on_end: Callable[[int], None] | None = None,
    ) -> int:
        """Play a one-shot effect, ducking the music under it.

        Raises:
            AssetLoadError: If the output refuses to start the voice.
        """
        volume = _clamp01(volume)
        side = -1.0 if self._rng.random() < 0.5 else 1.0
        pan = side * (0.5 + self._rng.random() * 0.5)

        handle = self._start(asset, VoiceKind.SFX, name, volume, pan, False, on_end)
        self._update_sfx_bus()

        if envelope is not None and self._music is not None:
            self.ducker.duck(envelope)

        logger.info(f"Playing SFX: {name} at {round(volume * 100)}%")
        return handle

    # =========================================================================
    # Voices
    # =========================================================================

    def fade_out(self, handle: int, fade_s: float) -> bool:
        """Fade a voice to zero and stop it."""
        voice = self._voices.get(handle)
        if voice is None:
            return False
        if voice is self._music:
            self._music = None
        self._release(voice, fade_s)
        return True

    def stop(self, handle: int) -> bool:
        """Stop a voice immediately."""
        voice = self._voices.pop(handle, None)
        if voice is None:
            return False
        if voice is self._music:
            self._music = None
        self.output.stop(handle)
        if voice.kind == VoiceKind.SFX:
            self._update_sfx_bus()
        return True

    def stop_all(self) -> None:
        """Stop every voice and pending fade immediately."""
        self.ducker.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        for handle in list(self._voices):
            self.output.stop(handle)
        self._voices.clear()
        self._music = None
        self.music_bus.gain = 1.0
        self.sfx_bus.gain = 1.0

    def set_master_gain(self, gain: float) -> None:
        self.master_bus.gain = _clamp01(gain)
        for voice in self._voices.values():
            self._push(voice)

    def set_music_bus_gain(self, gain: float) -> None:
        self.music_bus.gain = max(0.0, gain)
        for voice in self._voices.values():
            if voice.kind == VoiceKind.MUSIC:
                self._push(voice)

    def effective_gain(self, voice: Voice) -> float:
        """Voice × normalization × bus × master."""
        bus = self.music_bus if voice.kind == VoiceKind.MUSIC else self.sfx_bus
        return max(0.0, voice.gain * voice.norm_gain * bus.gain * self.master_bus.gain)

    @property
    def music(self) -> Voice | None:
        return self._music

    @property
    def sfx_voices(self) -> list[Voice]:
        return [v for v in self._voices.values() if v.kind == VoiceKind.SFX and not v.releasing]

    @property
    def voices(self) -> dict[int, Voice]:
        return dict(self._voices)

    @property
    def is_ducking(self) -> bool:
        return self.ducker.is_ducking

    async def drain(self) -> None:
        """Wait until every pending fade and duck envelope has finished."""
        while self._tasks or self.ducker.is_ducking:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self.ducker.wait()

    # =========================================================================
    # Internals
    # =========================================================================

    def _start(
        self,
        asset: DecodedAsset,
        kind: VoiceKind,
        name: str,
        gain: float,
        pan: float,
        loop: bool,
        on_end: Callable[[int], None] | None,
    ) -> int:
        handle_box: list[int] = []

        def ended():
            if handle_box:
                self._on_voice_end(handle_box[0], on_end)

        voice = Voice(
            handle=0,
            kind=kind,
            name=name,
            asset=asset,
            volume=gain,
            gain=gain,
            loop=loop,
            started_at=self._clock(),
            pan=pan,
        )
        try:
            handle = self.output.start(
                asset,
                gain=self.effective_gain(voice),
                pan=pan,
                loop=loop,
                on_end=ended,
            )
        except Exception as e:
            raise AssetLoadError(asset.url, f"Failed to play {kind.value}: {name} ({e})") from e

        voice.handle = handle
        handle_box.append(handle)
        self._voices[handle] = voice
        return handle

    def _on_voice_end(self, handle: int, on_end: Callable[[int], None] | None) -> None:
        voice = self._voices.pop(handle, None)
        if voice is None:
            return
        if voice is self._music:
            self._music = None
        if voice.kind == VoiceKind.SFX:
            self._update_sfx_bus()
        if on_end is not None and not voice.releasing:
            on_end(handle)

    def _release(self, voice: Voice, fade_s: float) -> None:
        voice.releasing = True
        self._spawn(self._fade_and_stop(voice, fade_s))

    async def _fade_and_stop(self, voice: Voice, fade_s: float) -> None:
        await self._fade_voice(voice, voice.gain, 0.0, fade_s)
        if self._voices.get(voice.handle) is voice:
            self.stop(voice.handle)

    async def _fade_voice(self, voice: Voice, start: float, end: float, duration_s: float) -> None:
        await ramp_gain(
            lambda g: self._set_voice_gain(voice, g),
            start,
            end,
            duration_s,
            self.config.fade_step_s,
        )

    def _set_voice_gain(self, voice: Voice, gain: float) -> None:
        if self._voices.get(voice.handle) is not voice:
            return
        voice.gain = gain
        self._push(voice)

    def _push(self, voice: Voice) -> None:
        self.output.set_gain(voice.handle, self.effective_gain(voice))

    def _update_sfx_bus(self) -> None:
        level = sum(
            v.volume * v.norm_gain * (v.asset.rms or DEFAULT_SFX_RMS)
            for v in self._voices.values()
            if v.kind == VoiceKind.SFX
        )
        gain = self._compressor.gain(level)
        if gain != self.sfx_bus.gain:
            self.sfx_bus.gain = gain
            for voice in self._voices.values():
                if voice.kind == VoiceKind.SFX:
                    self._push(voice)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
