"""
Audio assets - decoding, loudness normalization and bus compression.

Decoded assets are plain numpy buffers; everything here is synchronous
and CPU-bound, so the prefetch scheduler runs ``decode_audio`` in a worker
thread.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from cue_director.errors import AssetLoadError

logger = logging.getLogger(__name__)

TARGET_RMS = 0.1
"""Roughly -20 dBFS perceived loudness."""

NORM_GAIN_MIN = 0.5
NORM_GAIN_MAX = 2.5
RMS_SAMPLE_POINTS = 48000


@dataclass
class DecodedAsset:
    """A decoded, playable asset."""
    url: str
    samples: np.ndarray
    sample_rate: int
    rms: float = 0.0
    norm_gain: float = 1.0

    @property
    def duration_s(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


def estimate_rms(samples: np.ndarray, max_points: int = RMS_SAMPLE_POINTS) -> float:
    """RMS of the first channel, sampled with a stride of up to ``max_points``."""
    if samples.size == 0:
        return 0.0
    channel = samples[:, 0] if samples.ndim > 1 else samples
    stride = max(1, len(channel) // max_points)
    picked = channel[::stride].astype(np.float64)
    return float(np.sqrt(np.mean(picked * picked)))


def normalization_gain(rms: float) -> float:
    """Gain bringing ``rms`` to the target loudness, clamped to [0.5, 2.5].

    Silent or invalid input gets unity gain.
    """
    if not np.isfinite(rms) or rms <= 0:
        return 1.0
    return float(np.clip(TARGET_RMS / rms, NORM_GAIN_MIN, NORM_GAIN_MAX))


def decode_audio(data: bytes, url: str = "") -> DecodedAsset:
    """Decode encoded audio bytes into float32 samples.

    Raises:
        AssetLoadError: If the bytes are not a readable audio file.
    """
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
    except (RuntimeError, ValueError, TypeError) as e:
        raise AssetLoadError(url, f"Failed to decode {url or 'asset'}: {e}") from e

    rms = estimate_rms(samples)
    asset = DecodedAsset(
        url=url,
        samples=samples,
        sample_rate=int(sample_rate),
        rms=rms,
        norm_gain=normalization_gain(rms),
    )
    logger.debug(f"Decoded {url}: {asset.duration_s:.2f}s, rms={rms:.4f}, gain={asset.norm_gain:.2f}")
    return asset


# =============================================================================
# Compression
# =============================================================================

@dataclass(frozen=True)
class Compressor:
    """Soft-knee downward compressor (static curve only).

    Fields:
        threshold_db: Level where compression starts (knee centre).
        knee_db: Width of the soft knee.
        ratio: Input/output slope above the knee.
    """
    threshold_db: float = -24.0
    knee_db: float = 30.0
    ratio: float = 3.0

    def __post_init__(self):
        if self.ratio < 1.0:
            raise ValueError(f"ratio must be >= 1, got {self.ratio}")
        if self.knee_db < 0:
            raise ValueError(f"knee_db must be >= 0, got {self.knee_db}")

    def gain_db(self, level_db: np.ndarray | float) -> np.ndarray:
        """Gain reduction (<= 0 dB) for an input level in dBFS."""
        x = np.asarray(level_db, dtype=np.float64)
        t, w, r = self.threshold_db, self.knee_db, self.ratio

        out = np.where(x > t + w / 2, t + (x - t) / r, x)
        if w > 0:
            in_knee = (x >= t - w / 2) & (x <= t + w / 2)
            knee = x + (1.0 / r - 1.0) * (x - t + w / 2) ** 2 / (2 * w)
            out = np.where(in_knee, knee, out)
        return out - x

    def gain(self, level: float) -> float:
        """Linear gain for a linear input level."""
        if level <= 0:
            return 1.0
        level_db = 20.0 * np.log10(level)
        return float(10.0 ** (self.gain_db(level_db) / 20.0))


SFX_COMPRESSOR = Compressor()
