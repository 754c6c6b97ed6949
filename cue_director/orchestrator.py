"""
Playback Orchestrator - the director's single consumer.

Fragments arrive on one ``asyncio.Queue`` and are handled strictly one at
a time. Per fragment, in this order:

    1. transcript buffer
    2. instant cue extraction
    3. story alignment
    4. voice commands (finals only)
    5. play the instant cue, then any story cues
    6. story-window and predictive prefetch
    7. periodic remote analysis (runs in the background)

The orchestrator is the only writer of the ActiveSound collection, the
cooldown ledger and (through commit/reject) the music state. Every
suspendable call carries the epoch captured when the work started; once a
mode change or story close bumps the epoch, late results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Callable, Sequence

from cue_director.catalog import LocalLibrary, SoundCatalog
from cue_director.config import (
    DirectorConfig,
    DirectorMode,
    UserPreferences,
    preload_queries,
    stingers_for,
)
from cue_director.decisions import (
    MusicDecision,
    SceneDecision,
    SfxDecision,
    parse_decision,
)
from cue_director.epoch import Epoch
from cue_director.errors import (
    AssetLoadError,
    DecisionValidationError,
    QuotaExhaustedError,
    StaleEpochError,
)
from cue_director.music.director import MusicDirector, MusicPlan, MusicTransition, music_volume
from cue_director.providers.base import AssetFetcher, DecisionService, SearchProvider
from cue_director.runtime.audio import DecodedAsset
from cue_director.runtime.cooldown import CooldownLedger, cooldown_bucket
from cue_director.runtime.ducking import DuckingEnvelope
from cue_director.runtime.mixer import MixEngine
from cue_director.runtime.output import AudioOutput, MemoryOutput
from cue_director.runtime.prefetch import PrefetchScheduler
from cue_director.session import ActiveSound, PlaybackSnapshot, SessionState, SoundKind
from cue_director.status import StatusBoard
from cue_director.story.aligner import AlignResult, StoryAligner
from cue_director.transcript.buffer import TranscriptFragment
from cue_director.transcript.commands import (
    MUSIC_LEVEL_STEP,
    CommandKind,
    VoiceCommand,
    parse_commands,
)
from cue_director.transcript.cues import (
    STORY_CUE_MAP,
    CueCandidate,
    alternates_for,
    extract_cue,
    predictive_queries,
    story_cue,
)

logger = logging.getLogger(__name__)

SKIP_FADE_S = 0.3
MUTE_FADE_S = 0.25
STINGER_INTENSITY = 0.5


class PlaybackOrchestrator:
    """
    Wire transcript, story, music and effects together.

    Example:
        director = PlaybackOrchestrator(
            fetcher=HttpAssetFetcher(),
            providers=[FreesoundProvider(key)],
            catalog=await backend.fetch_catalog(),
            decision_service=backend,
            output=MemoryOutput(),
        )
        await director.start()
        director.submit(TranscriptFragment("the wolf howled", is_final=True))
        await director.join()
        director.snapshot().to_dict()
        await director.close()
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        output: AudioOutput | None = None,
        providers: Sequence[SearchProvider] = (),
        catalog: SoundCatalog | None = None,
        decision_service: DecisionService | None = None,
        config: DirectorConfig | None = None,
        prefs: UserPreferences | None = None,
        mode: DirectorMode | str = DirectorMode.AUTO,
        status: StatusBoard | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.config = config or DirectorConfig()
        self.session = SessionState(
            config=self.config,
            prefs=prefs or UserPreferences(),
            mode=DirectorMode.parse(mode),
        )
        self.status = status or StatusBoard()
        self.catalog = catalog or SoundCatalog()
        self.decision_service = decision_service
        self._clock = clock
        self._rng = rng or random.Random(self.config.seed)

        self.scheduler = PrefetchScheduler(
            fetcher=fetcher,
            providers=providers,
            library=LocalLibrary.from_catalog(self.catalog) if len(self.catalog) else None,
            config=self.config,
            epochs=self.session.epochs,
            concurrency=self._concurrency(),
        )
        self.mixer = MixEngine(output or MemoryOutput(), self.config, rng=self._rng, clock=clock)
        self.cooldowns = CooldownLedger(self.config.cooldown_s, clock=clock)
        self.music = MusicDirector(self.catalog, self.config, rng=self._rng, clock=clock)
        self.aligner = StoryAligner(self.config, cue_map=STORY_CUE_MAP)

        self._events: asyncio.Queue[TranscriptFragment | None] | None = None
        self._consumer: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._stinger: asyncio.Task | None = None
        self._pending_sfx: set[str] = set()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def prefs(self) -> UserPreferences:
        return self.session.prefs

    @property
    def mode(self) -> DirectorMode:
        return self.session.mode

    @property
    def epoch(self) -> Epoch:
        return self.session.epochs.current

    @property
    def active(self) -> dict[int, ActiveSound]:
        return self.session.active

    def snapshot(self) -> PlaybackSnapshot:
        return self.session.snapshot()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, preload: bool = True) -> None:
        """Start consuming fragments (and preload the current mode)."""
        if self._consumer is None:
            self._events = asyncio.Queue()
            self._consumer = asyncio.get_running_loop().create_task(self._consume())
        if preload:
            self._reset_for_mode(self.session.mode, announce=False)

    def submit(self, fragment: TranscriptFragment) -> None:
        """Queue a fragment for the consumer."""
        if self._events is None:
            raise RuntimeError("Orchestrator not started")
        self._events.put_nowait(fragment)

    def submit_text(self, text: str, is_final: bool = True) -> None:
        self.submit(TranscriptFragment(text, is_final=is_final, timestamp=self._clock()))

    async def join(self) -> None:
        """Wait until every queued fragment has been handled."""
        if self._events is not None:
            await self._events.join()

    async def settle(self) -> None:
        """Wait for background work (analysis, preloads, fades) to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.mixer.drain()

    async def close(self) -> None:
        """Stop consuming, cancel background work and silence everything."""
        if self._consumer is not None and self._events is not None:
            self._events.put_nowait(None)
            await self._consumer
        self._consumer = None
        self._cancel_stinger()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self.mixer.stop_all()
        self.session.active.clear()
        await self.scheduler.close()

    async def _consume(self) -> None:
        events = self._events
        while True:
            fragment = await events.get()
            try:
                if fragment is None:
                    break
                await self.handle_fragment(fragment)
            except Exception as e:
                logger.error(f"Failed to handle fragment: {e}", exc_info=True)
            finally:
                events.task_done()

    # =========================================================================
    # Fragment pipeline
    # =========================================================================

    async def handle_fragment(self, fragment: TranscriptFragment) -> None:
        """Run one fragment through the whole pipeline."""
        if fragment.is_empty:
            return
        session = self.session
        epoch = self.epoch
        session.transcript.add(fragment)

        cue = extract_cue(fragment.text) if self.prefs.sfx_enabled else None
        aligned = self.aligner.feed(fragment.text) if self.aligner.active else None

        if fragment.is_final:
            for command in parse_commands(fragment.text):
                await self.apply_command(command)

        if cue is not None:
            logger.info(f"Instant trigger detected: '{cue.query}'")
            await self.play_cue(cue, epoch)

        if aligned is not None:
            await self._play_story_cues(aligned, epoch)

        if not fragment.is_final:
            self._predictive_prefetch(fragment.text, epoch)

        self.maybe_analyze()

    async def _play_story_cues(self, aligned: AlignResult, epoch: Epoch) -> None:
        if self.prefs.sfx_enabled:
            for story_word, spoken in aligned.matches:
                cue = story_cue(story_word) or story_cue(spoken)
                if cue is not None:
                    await self.play_cue(cue, epoch)
            for query in aligned.prefetch:
                self.scheduler.submit(query, "sfx", epoch)

    def _predictive_prefetch(self, text: str, epoch: Epoch) -> None:
        session = self.session
        if not (self.prefs.prediction_enabled and self.prefs.sfx_enabled):
            return
        now = self._clock()
        if now - session.last_predictive_time < self.config.predictive_debounce_s:
            return
        session.last_predictive_time = now
        for query in predictive_queries(text, self.config.predictive_limit):
            self.scheduler.submit(query, "sfx", epoch)

    # =========================================================================
    # Effects
    # =========================================================================

    async def play_cue(self, cue: CueCandidate, epoch: Epoch | None = None) -> bool:
        """Resolve and play a cue, subject to the gates.

        Gates: effects enabled, fewer than ``max_simultaneous_sfx`` playing,
        bucket not cooling down, and no other play of the bucket in flight.

        Returns:
            True if the effect started.
        """
        epoch = self.epoch if epoch is None else epoch
        if not self._sfx_gate(cue.query):
            return False

        bucket = cooldown_bucket(cue.query)
        self._pending_sfx.add(bucket)
        try:
            url = await self.scheduler.resolve(cue.query, "sfx", epoch)
            if url is None:
                logger.debug(f"No sound found for '{cue.query}'")
                return False
            volume = self.config.calculate_volume(cue.volume) * self.prefs.sfx_level
            return await self._play_sfx_url(url, cue.query, cue.query, volume, epoch, alternates=True)
        finally:
            self._pending_sfx.discard(bucket)

    async def play_sfx_decision(self, sfx: SfxDecision, epoch: Epoch | None = None) -> bool:
        """Play a catalog effect chosen by the decision service."""
        epoch = self.epoch if epoch is None else epoch
        if not self._sfx_gate(sfx.id):
            return False
        url = self.catalog.url_for(sfx.id)
        if url is None:
            return False

        bucket = cooldown_bucket(sfx.id)
        self._pending_sfx.add(bucket)
        try:
            volume = sfx.volume * self.prefs.sfx_level
            return await self._play_sfx_url(url, sfx.id, sfx.id, volume, epoch)
        finally:
            self._pending_sfx.discard(bucket)

    def _sfx_gate(self, key: str) -> bool:
        if not self.prefs.sfx_enabled:
            return False
        busy = len(self.session.sfx) + len(self._pending_sfx)
        if busy >= self.config.max_simultaneous_sfx:
            return False
        if cooldown_bucket(key) in self._pending_sfx:
            return False
        return self.cooldowns.allowed(key)

    async def _play_sfx_url(
        self,
        url: str,
        name: str,
        cooldown_key: str,
        volume: float,
        epoch: Epoch,
        alternates: bool = False,
    ) -> bool:
        asset = await self._load(url, name, epoch)
        if asset is None or not self.session.epochs.is_current(epoch):
            return False
        if not self.prefs.sfx_enabled or len(self.session.sfx) >= self.config.max_simultaneous_sfx:
            return False

        try:
            handle = self.mixer.play_sfx(
                asset,
                name=name,
                volume=volume,
                envelope=self._duck_envelope(),
                on_end=self._on_sound_end,
            )
        except AssetLoadError as e:
            self.status.error(f"Failed to play sound: {name}", error=e.message)
            return False

        now = self._clock()
        self.session.active[handle] = ActiveSound(
            handle=handle,
            category=cooldown_bucket(cooldown_key),
            start_timestamp=now,
            kind=SoundKind.SFX,
            volume=max(0.0, min(1.0, volume)),
            loop=False,
            name=name,
        )
        self.cooldowns.record(cooldown_key, now)
        self.session.remember_sound(name)

        if alternates:
            for alt in alternates_for(name, self.config.alternates_limit):
                self.scheduler.submit(alt, "sfx", epoch)
        return True

    def _duck_envelope(self) -> DuckingEnvelope:
        config = self.config
        return DuckingEnvelope(
            attack_s=config.duck_attack_s,
            hold_s=config.duck_hold_s,
            release_s=config.duck_release_s,
            floor=config.duck_floor,
            sfx_hold_s=config.duck_sfx_hold_s,
        ).for_mood(self.prefs.mood_bias)

    def cull_sfx(self, now: float | None = None) -> int:
        """Fade out effects older than ``cull_age_s`` (scene change)."""
        now = self._clock() if now is None else now
        culled = 0
        for sound in self.session.sfx:
            if sound.age(now) > self.config.cull_age_s:
                self.mixer.fade_out(sound.handle, self.config.cull_fade_s)
                self.session.active.pop(sound.handle, None)
                culled += 1
        return culled

    def _on_sound_end(self, handle: int) -> None:
        self.session.active.pop(handle, None)

    # =========================================================================
    # Music
    # =========================================================================

    async def apply_music(self, decision: MusicDecision, epoch: Epoch | None = None) -> MusicPlan:
        """Run a music decision through the director and play the result."""
        epoch = self.epoch if epoch is None else epoch
        if not self.prefs.music_enabled:
            return MusicPlan(MusicTransition.HOLD, reason="music disabled")

        plan = self.music.decide(
            decision,
            now=self._clock(),
            mood_bias=self.prefs.mood_bias,
            music_level=self.prefs.music_level,
        )
        if plan.transition == MusicTransition.BLOCKED:
            logger.info(f"Music change blocked: {plan.reason}")
        if not plan.transition.plays:
            return plan
        return await self._play_music_plan(plan, epoch)

    async def _play_music_plan(self, plan: MusicPlan, epoch: Epoch) -> MusicPlan:
        url = self.catalog.url_for(plan.track_id)
        entry = self.catalog.get(plan.track_id)
        if url is None or entry is None:
            self.music.reject(plan, "not in catalog")
            return MusicPlan(MusicTransition.BLOCKED, track_id=plan.track_id, reason="not in catalog")

        asset = await self._load(url, plan.track_id, epoch, music=True)
        if asset is None or not self.session.epochs.is_current(epoch) or not self.prefs.music_enabled:
            self.music.reject(plan, "load failed or superseded")
            return MusicPlan(MusicTransition.BLOCKED, track_id=plan.track_id, reason="not played")

        try:
            handle = self.mixer.play_music(
                asset,
                name=entry.id,
                volume=plan.volume,
                loop=entry.loop,
                on_end=self._on_music_end,
            )
        except AssetLoadError as e:
            self.status.error(f"Failed to play music: {entry.id}", error=e.message)
            self.music.reject(plan, e.message)
            return MusicPlan(MusicTransition.BLOCKED, track_id=plan.track_id, reason=e.message)

        for sound in [s for s in self.session.active.values() if s.kind == SoundKind.MUSIC]:
            self.session.active.pop(sound.handle, None)
        now = self._clock()
        self.session.active[handle] = ActiveSound(
            handle=handle,
            category=plan.context.category if plan.context else "music",
            start_timestamp=now,
            kind=SoundKind.MUSIC,
            volume=plan.volume,
            loop=entry.loop,
            name=entry.id,
        )
        self.music.commit(plan, now)
        self.schedule_stinger()
        return plan

    async def skip_track(self, epoch: Epoch | None = None) -> MusicPlan | None:
        """Advance the rotation, or fade the current track if there is none."""
        epoch = self.epoch if epoch is None else epoch
        plan = self.music.advance_rotation(self.prefs.mood_bias, self.prefs.music_level)
        if plan is not None and self.prefs.music_enabled:
            return await self._play_music_plan(plan, epoch)
        self.stop_music(SKIP_FADE_S)
        return None

    def stop_music(self, fade_s: float | None = None) -> None:
        self.mixer.stop_music(fade_s)
        for sound in [s for s in self.session.active.values() if s.kind == SoundKind.MUSIC]:
            self.session.active.pop(sound.handle, None)
        self.music.reset()

    def _on_music_end(self, handle: int) -> None:
        if self.session.active.pop(handle, None) is None:
            return
        self._spawn(self.skip_track())

    def _refresh_music_volume(self) -> None:
        music = self.session.music
        if music is None:
            return
        volume = music_volume(self.music.state.base_volume, self.prefs.mood_bias, self.prefs.music_level)
        music.volume = volume
        self.mixer.set_music_volume(volume)

    # =========================================================================
    # Decisions
    # =========================================================================

    async def apply_decision(self, decision: SceneDecision | dict[str, Any], epoch: Epoch | None = None) -> None:
        """Apply a scene decision: cull, music, effects, status.

        Raises:
            DecisionValidationError: If a raw decision has an unknown shape.
        """
        epoch = self.epoch if epoch is None else epoch
        if not isinstance(decision, SceneDecision):
            decision = parse_decision(decision, self.catalog)

        self.cull_sfx()
        if self.prefs.music_enabled:
            await self.apply_music(decision.music, epoch)
        if self.prefs.sfx_enabled:
            for sfx in decision.sfx:
                await self.play_sfx_decision(sfx, epoch)
        if self.session.epochs.is_current(epoch):
            self.status.info(decision.scene or "Playing sounds...")

    def maybe_analyze(self, now: float | None = None) -> bool:
        """Start a background analysis if the gate allows it.

        Gate: a decision service exists, prediction is on, no analysis is
        running, ``analysis_interval_s`` has passed, and the context text
        (last finals plus interim) is long enough.
        """
        session = self.session
        if self.decision_service is None or not self.prefs.prediction_enabled:
            return False
        if session.analysis_in_progress:
            return False
        now = self._clock() if now is None else now
        if now - session.last_analysis_time < self.config.analysis_interval_s:
            return False
        text = session.transcript.context_text(self.config.analysis_context_finals)
        if len(text) < self.config.analysis_min_context:
            return False

        session.last_analysis_time = now
        session.analysis_in_progress = True
        self._spawn(self._analyze(text, session.analysis_version, self.epoch))
        return True

    async def _analyze(self, text: str, version: int, epoch: Epoch) -> None:
        session = self.session
        try:
            context = {
                "mode": session.mode.value,
                "musicEnabled": self.prefs.music_enabled,
                "sfxEnabled": self.prefs.sfx_enabled,
                "moodBias": self.prefs.mood_bias,
                "recentSounds": session.recent_sounds[-5:],
                "recentMusic": self.music.state.current_track_id,
            }
            try:
                raw = await self.decision_service.analyze(text, session.mode.value, context)
            except QuotaExhaustedError as e:
                self.status.warning(f"Analysis paused for {e.retry_after_s:.0f}s (quota)")
                return
            except Exception as e:
                logger.warning(f"Analysis failed: {e}")
                self.status.error("Analysis error")
                return

            if raw is None:
                return
            if version != session.analysis_version or not session.epochs.is_current(epoch):
                logger.debug("Discarding stale analysis result")
                return
            if not self.prefs.prediction_enabled:
                return
            try:
                decision = parse_decision(raw, self.catalog)
            except DecisionValidationError as e:
                logger.warning(e.message)
                return
            await self.apply_decision(decision, epoch)
        finally:
            if version == session.analysis_version:
                session.analysis_in_progress = False

    # =========================================================================
    # Commands and modes
    # =========================================================================

    async def apply_command(self, command: VoiceCommand) -> None:
        prefs = self.prefs
        kind = command.kind
        if kind == CommandKind.SKIP_TRACK:
            self.status.info("Skipping track...")
            await self.skip_track()
        elif kind in (CommandKind.MUSIC_UP, CommandKind.MUSIC_DOWN):
            step = MUSIC_LEVEL_STEP if kind == CommandKind.MUSIC_UP else -MUSIC_LEVEL_STEP
            level = prefs.adjust_music_level(step)
            self._refresh_music_volume()
            self.status.info(f"Music level: {round(level * 100)}%")
        elif kind == CommandKind.MUTE_SFX:
            prefs.sfx_enabled = False
            self.status.info("Sound effects muted")
        elif kind == CommandKind.UNMUTE_SFX:
            prefs.sfx_enabled = True
            self.status.info("Sound effects unmuted")
        elif kind == CommandKind.MUTE_MUSIC:
            prefs.music_enabled = False
            self.stop_music(MUTE_FADE_S)
            self.status.info("Music muted")
        elif kind == CommandKind.UNMUTE_MUSIC:
            prefs.music_enabled = True
            self.status.info("Music unmuted")
        elif kind == CommandKind.SWITCH_MODE and command.mode:
            self.set_mode(command.mode)

    def set_mode(self, mode: DirectorMode | str) -> Epoch:
        """Switch modes: invalidate in-flight work, reset, preload.

        Returns:
            The new epoch.
        """
        return self._reset_for_mode(DirectorMode.parse(mode), announce=True)

    def _reset_for_mode(self, mode: DirectorMode, announce: bool) -> Epoch:
        session = self.session
        session.mode = mode
        epoch = session.epochs.bump()

        session.analysis_version += 1
        session.analysis_in_progress = False
        session.last_analysis_time = float("-inf")
        session.transcript.clear()
        session.recent_sounds.clear()
        self.scheduler.clear()
        self.stop_all()

        if announce:
            self.status.info(f"Mode changed to: {mode.value.upper()}, reset sounds and context")
        self._spawn(self.preload_mode(epoch))
        return epoch

    async def preload_mode(self, epoch: Epoch | None = None) -> bool:
        """Warm the mode's preload set through the worker pool."""
        epoch = self.epoch if epoch is None else epoch
        if not self.prefs.sfx_enabled:
            return False
        queries = preload_queries(self.session.mode, self.config.preload_cap)
        self.scheduler.set_concurrency(self._concurrency())

        started = self._clock()
        self.scheduler.preload(queries, "sfx", epoch)
        done = await self.scheduler.wait_for_preload(epoch)
        if done and self.session.epochs.is_current(epoch):
            elapsed = max(0.1, self._clock() - started)
            self.status.success(f"Prepared sounds ({len(queries)}) in {elapsed:.1f}s")
        return done

    def stop_all(self) -> None:
        """Silence everything immediately."""
        self._cancel_stinger()
        self.mixer.stop_all()
        self.session.active.clear()
        self.music.reset()

    def update_preferences(self, **changes: Any) -> UserPreferences:
        """Change preferences; unknown names raise AttributeError."""
        prefs = self.prefs
        for name, value in changes.items():
            if not hasattr(prefs, name):
                raise AttributeError(f"Unknown preference: {name}")
            setattr(prefs, name, value)
        prefs.__post_init__()
        self.scheduler.set_concurrency(self._concurrency())
        if not prefs.music_enabled and self.session.music is not None:
            self.stop_music(MUTE_FADE_S)
        else:
            self._refresh_music_volume()
        return prefs

    def set_catalog(self, catalog: SoundCatalog) -> None:
        self.catalog = catalog
        self.music.catalog = catalog
        self.scheduler.library = LocalLibrary.from_catalog(catalog) if len(catalog) else None

    # =========================================================================
    # Story
    # =========================================================================

    def open_story(self, text: str, title: str = "") -> list[str]:
        """Start following a story and prefetch its first cues."""
        queries = self.aligner.open(text, title)
        if self.prefs.sfx_enabled:
            for query in queries:
                self.scheduler.submit(query, "sfx", self.epoch)
        return queries

    def close_story(self) -> Epoch:
        self.aligner.close()
        return self.session.epochs.bump()

    # =========================================================================
    # Stingers
    # =========================================================================

    def schedule_stinger(self) -> bool:
        """Queue the next mode stinger 20-45 s from now."""
        if not (self.prefs.sfx_enabled and self.prefs.prediction_enabled):
            return False
        self._cancel_stinger()
        delay = self._rng.uniform(self.config.stinger_min_s, self.config.stinger_max_s)
        self._stinger = asyncio.get_running_loop().create_task(self._stinger_after(delay, self.epoch))
        return True

    async def _stinger_after(self, delay: float, epoch: Epoch) -> None:
        await asyncio.sleep(delay)
        if not self.session.epochs.is_current(epoch) or self.session.music is None:
            return
        choice = self._rng.choice(stingers_for(self.session.mode))
        cue = CueCandidate.make(choice, priority=0, volume=STINGER_INTENSITY)
        await self.play_cue(cue, epoch)
        self._stinger = None
        if self.session.epochs.is_current(epoch) and self.session.music is not None:
            self.schedule_stinger()

    def _cancel_stinger(self) -> None:
        if self._stinger is not None and self._stinger is not asyncio.current_task():
            self._stinger.cancel()
        self._stinger = None

    # =========================================================================
    # Internals
    # =========================================================================

    async def _load(self, url: str, name: str, epoch: Epoch, music: bool = False) -> DecodedAsset | None:
        try:
            return await self.scheduler.load(url, epoch)
        except StaleEpochError:
            return None
        except AssetLoadError as e:
            kind = "music" if music else "sound"
            logger.warning(e.message)
            self.status.error(f"Failed to load {kind}: {name}")
            return None

    def _concurrency(self) -> int:
        return self.config.concurrency_for(self.prefs.low_latency, self.prefs.network_type)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
