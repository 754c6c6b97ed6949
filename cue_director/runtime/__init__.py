"""
Runtime module - Playback, mixing, ducking, caching and prefetch.

Everything that makes sound or moves bytes lives here; deciding *what* to
play lives in transcript/, story/ and music/.
"""

from cue_director.runtime.audio import (
    DecodedAsset,
    Compressor,
    decode_audio,
    estimate_rms,
    normalization_gain,
    SFX_COMPRESSOR,
)

from cue_director.runtime.cooldown import (
    CooldownLedger,
    cooldown_bucket,
)

from cue_director.runtime.cache import (
    CacheStats,
    BoundedCache,
    ResolutionCache,
    AssetCache,
)

from cue_director.runtime.ducking import (
    DuckingEnvelope,
    DuckingController,
    gain_ramp,
    ramp_gain,
    DUCKING_STANDARD,
)

from cue_director.runtime.output import (
    AudioOutput,
    MemoryOutput,
)

from cue_director.runtime.mixer import (
    MixEngine,
    Voice,
    VoiceKind,
)

from cue_director.runtime.prefetch import (
    PrefetchScheduler,
    PreloadTask,
)

__all__ = [
    # Audio
    "DecodedAsset",
    "Compressor",
    "decode_audio",
    "estimate_rms",
    "normalization_gain",
    "SFX_COMPRESSOR",
    # Cooldown
    "CooldownLedger",
    "cooldown_bucket",
    # Cache
    "CacheStats",
    "BoundedCache",
    "ResolutionCache",
    "AssetCache",
    # Ducking
    "DuckingEnvelope",
    "DuckingController",
    "gain_ramp",
    "ramp_gain",
    "DUCKING_STANDARD",
    # Output
    "AudioOutput",
    "MemoryOutput",
    # Mixing
    "MixEngine",
    "Voice",
    "VoiceKind",
    # Prefetch
    "PrefetchScheduler",
    "PreloadTask",
]
