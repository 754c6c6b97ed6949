"""
Cue Director - Live cue and playback director for ambient audio.

Listens to a live transcript and decides, in real time, which sound effects
and which background music should be playing.

Architecture:
    TranscriptFragment → Orchestrator → (cues, story, music) → MixEngine → AudioOutput

Public API (stable):
    PlaybackOrchestrator - Main interface. Submit fragments, read snapshots.
    DirectorConfig       - Tunable constants (cooldowns, ducking, prefetch).
    UserPreferences      - Per-user switches and levels.
    DirectorMode         - auto, horror, christmas, halloween, dnd, bedtime, sing.
    TranscriptFragment   - One piece of live transcript.

Modules:
    transcript  - Fragment buffer, instant cue extraction, voice commands
    story       - Tokenizer and live story aligner
    music       - Mood contexts and the music state machine
    runtime     - Decoding, mixing, ducking, caching, prefetch
    providers   - Backend catalog/analysis and Freesound clients (httpx)

Example:
    from cue_director import PlaybackOrchestrator, TranscriptFragment
    from cue_director.providers import HttpAssetFetcher

    director = PlaybackOrchestrator(fetcher=HttpAssetFetcher())
    await director.start()
    director.submit(TranscriptFragment("and then the door creaked open", is_final=True))
    await director.join()
    print(director.snapshot().to_dict())
"""

from cue_director.config import (
    DirectorConfig,
    DirectorMode,
    UserPreferences,
)

from cue_director.catalog import (
    CatalogEntry,
    SoundCatalog,
    SoundType,
)

from cue_director.decisions import (
    ChangeTo,
    Continue,
    NoMusic,
    SceneDecision,
    SfxDecision,
    parse_decision,
)

from cue_director.epoch import (
    Epoch,
    EpochCounter,
)

from cue_director.errors import (
    DirectorError,
    ResolutionError,
    AssetLoadError,
    StaleEpochError,
    QuotaExhaustedError,
    DecisionValidationError,
)

from cue_director.session import (
    ActiveSound,
    PlaybackSnapshot,
    SessionState,
    SoundKind,
)

from cue_director.status import (
    StatusBoard,
    StatusLevel,
    StatusRecord,
)

from cue_director.transcript import (
    TranscriptFragment,
    CueCandidate,
    extract_cue,
)

from cue_director.orchestrator import PlaybackOrchestrator

__version__ = "1.0.0"

__all__ = [
    # Core
    "PlaybackOrchestrator",
    "DirectorConfig",
    "DirectorMode",
    "UserPreferences",
    "TranscriptFragment",
    "CueCandidate",
    "extract_cue",
    # Catalog & decisions
    "CatalogEntry",
    "SoundCatalog",
    "SoundType",
    "ChangeTo",
    "Continue",
    "NoMusic",
    "SceneDecision",
    "SfxDecision",
    "parse_decision",
    # Session
    "ActiveSound",
    "PlaybackSnapshot",
    "SessionState",
    "SoundKind",
    "Epoch",
    "EpochCounter",
    # Status
    "StatusBoard",
    "StatusLevel",
    "StatusRecord",
    # Errors
    "DirectorError",
    "ResolutionError",
    "AssetLoadError",
    "StaleEpochError",
    "QuotaExhaustedError",
    "DecisionValidationError",
]
