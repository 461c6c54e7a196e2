"""
Keystroke fingerprint extraction.

Turns a raw sequence of inter-keystroke intervals (milliseconds) into a
KeystrokeFingerprint: mean, population variance, a normalised 5-bucket
histogram and a velocity. The fingerprint is the only thing the
classifier and the proof builder ever see; raw keystrokes never leave
the capturing front end.

    fp = extract_fingerprint(intervals)
    fp.velocity, fp.variance, fp.histogram
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

import numpy as np

from typeproof.contract import (
    BUCKET_WIDTH_MS,
    DEFAULT_EDIT_PATTERNS,
    FULL_SAMPLES,
    MIN_SAMPLES,
    N_BUCKETS,
    VELOCITY_REL_TOLERANCE,
)
from typeproof.errors import DegenerateInput, InsufficientData, MalformedCommitment

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# FINGERPRINT
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class KeystrokeFingerprint:
    """
    Statistical summary of one typing session.

    Construct through extract_fingerprint(). The constructor does not
    re-derive the statistics, but it rejects records whose sample count,
    histogram, mean or velocity disagree with each other.
    """
    intervals: Tuple[float, ...]
    histogram: Tuple[float, ...]          # N_BUCKETS entries, sums to 1.0
    mean: float
    variance: float                       # population variance (ddof=0)
    velocity: float                       # 1000 / mean
    edit_patterns: Tuple[str, ...] = field(default=DEFAULT_EDIT_PATTERNS)

    def __post_init__(self) -> None:
        n = len(self.intervals)
        if n < MIN_SAMPLES:
            raise InsufficientData(f"Need at least {MIN_SAMPLES} intervals, got {n}")
        if len(self.histogram) != N_BUCKETS:
            raise DegenerateInput(
                f"Histogram must have {N_BUCKETS} buckets, got {len(self.histogram)}"
            )
        if abs(math.fsum(self.histogram) - 1.0) > 1e-9:
            raise DegenerateInput("Histogram mass must sum to 1.0")
        if not (math.isfinite(self.mean) and self.mean > 0.0):
            raise DegenerateInput(f"Mean interval must be positive and finite, got {self.mean}")
        if not math.isclose(self.mean, math.fsum(self.intervals) / n, rel_tol=1e-9):
            raise DegenerateInput("Mean does not match the intervals")
        if not math.isclose(self.velocity, 1000.0 / self.mean, rel_tol=VELOCITY_REL_TOLERANCE):
            raise DegenerateInput(
                f"Velocity {self.velocity} does not equal 1000 / mean ({1000.0 / self.mean})"
            )

    @property
    def key_count(self) -> int:
        return len(self.intervals)

    @property
    def total_time(self) -> float:
        return float(math.fsum(self.intervals))

    def to_dict(self) -> dict:
        return {
            "keystroke_deltas": list(self.intervals),
            "histogram": list(self.histogram),
            "mean": self.mean,
            "variance": self.variance,
            "velocity": self.velocity,
            "edit_patterns": list(self.edit_patterns),
            "total_time": self.total_time,
            "key_count": self.key_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> KeystrokeFingerprint:
        """
        Rebuild a fingerprint from its wire form.

        The statistics are recomputed from the raw deltas so a caller
        cannot smuggle in a histogram or variance that disagrees with
        the samples.
        """
        if not isinstance(data, dict) or "keystroke_deltas" not in data:
            raise MalformedCommitment("Fingerprint must be an object with keystroke_deltas")
        patterns = data.get("edit_patterns", list(DEFAULT_EDIT_PATTERNS))
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            raise MalformedCommitment("edit_patterns must be a list of strings")
        return extract_fingerprint(data["keystroke_deltas"], edit_patterns=patterns)


# ═══════════════════════════════════════════════════════════════════
# EXTRACTION
# ═══════════════════════════════════════════════════════════════════

def _as_interval_array(intervals: Iterable[float]) -> np.ndarray:
    if isinstance(intervals, (str, bytes)):
        raise DegenerateInput("Intervals must be a sequence of numbers, got text")
    values = list(intervals)
    if any(isinstance(v, bool) or not isinstance(v, (int, float, np.number)) for v in values):
        raise DegenerateInput("Intervals must all be real numbers")
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1:
        raise DegenerateInput(f"Intervals must be one-dimensional, got shape {arr.shape}")
    return arr


def bucket_histogram(arr: np.ndarray) -> np.ndarray:
    """
    Normalised histogram over fixed 200 ms buckets.

    Bucket index is floor(x / BUCKET_WIDTH_MS) clamped to [0, N_BUCKETS-1];
    everything at or above 800 ms lands in the last bucket.
    """
    idx = np.clip(np.floor(arr / BUCKET_WIDTH_MS), 0, N_BUCKETS - 1).astype(np.int64)
    counts = np.bincount(idx, minlength=N_BUCKETS)
    return counts / len(arr)


def extract_fingerprint(
    intervals: Iterable[float],
    edit_patterns: Iterable[str] = DEFAULT_EDIT_PATTERNS,
) -> KeystrokeFingerprint:
    """
    Extract a fingerprint from inter-keystroke intervals.

    Args:
        intervals: Non-negative intervals in milliseconds, in typing order.
        edit_patterns: Qualitative tags for the session. An open list;
            new analyzers append tags rather than extend an enum.

    Returns:
        A frozen KeystrokeFingerprint.

    Raises:
        InsufficientData: Fewer than MIN_SAMPLES intervals.
        DegenerateInput: Non-numeric, non-finite or negative intervals,
            or an all-zero sample whose velocity is undefined.
    """
    arr = _as_interval_array(intervals)
    n = len(arr)
    if n < MIN_SAMPLES:
        raise InsufficientData(f"Need at least {MIN_SAMPLES} intervals, got {n}")
    if not np.all(np.isfinite(arr)):
        raise DegenerateInput("Intervals contain NaN or infinity")
    if np.any(arr < 0):
        raise DegenerateInput("Intervals must be non-negative")

    mean = float(np.mean(arr))
    if mean <= 0.0:
        raise DegenerateInput("Mean interval is zero; velocity is undefined")
    variance = float(np.var(arr))
    histogram = bucket_histogram(arr)

    fp = KeystrokeFingerprint(
        intervals=tuple(float(v) for v in arr),
        histogram=tuple(float(h) for h in histogram),
        mean=mean,
        variance=variance,
        velocity=1000.0 / mean,
        edit_patterns=tuple(str(p) for p in edit_patterns),
    )
    logger.debug(
        "Extracted fingerprint: n=%d mean=%.3f variance=%.3f velocity=%.4f",
        n, fp.mean, fp.variance, fp.velocity,
    )
    return fp


def collection_stage(n_samples: int) -> str:
    """
    Map a sample count to a collection stage.

    "idle" below MIN_SAMPLES, "ready" once an initial check is possible,
    "full" from FULL_SAMPLES on.
    """
    if n_samples < MIN_SAMPLES:
        return "idle"
    if n_samples < FULL_SAMPLES:
        return "ready"
    return "full"


def samples_remaining(n_samples: int) -> List[int]:
    """Samples still missing for [initial check, full verification]."""
    return [max(0, MIN_SAMPLES - n_samples), max(0, FULL_SAMPLES - n_samples)]
