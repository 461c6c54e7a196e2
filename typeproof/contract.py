"""
Typing Contract: frozen parameters for fingerprints and commitments.

INVARIANT: The encoding constants in this file (bucket layout, minimum
sample count, schema version) do not change without a schema version
bump. Changing any of them invalidates every commitment built under the
previous schema.

The classifier thresholds are policy, not physics. They live in
ClassifierPolicy so a verifier can state exactly which thresholds a
verdict was measured against, and so a deployment can tune them without
touching the extraction or encoding code.
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from typeproof.errors import EncodingError


# ═══════════════════════════════════════════════════════════════════
# CONSTANTS (frozen)
# ═══════════════════════════════════════════════════════════════════

SCHEMA_VERSION: int = 1
MIN_SAMPLES: int = 20            # floor below which statistics are degenerate
FULL_SAMPLES: int = 100          # sample count for a full verification pass
N_BUCKETS: int = 5
BUCKET_WIDTH_MS: float = 200.0   # buckets cover [0, 1000) ms, last one is open
DEFAULT_EDIT_PATTERNS = ("sequential-typing",)

VARIANCE_MIN: float = 5000.0     # below: too regular
VARIANCE_MAX: float = 500000.0   # above: too erratic
MAX_BUCKET_MASS: float = 0.5
MEAN_INTERVAL_MIN: float = 50.0  # strict mode only
MEAN_INTERVAL_MAX: float = 500.0

VELOCITY_REL_TOLERANCE: float = 1e-9
MAX_TIMESTAMP: int = 2 ** 63

_FLOAT_FIELDS = (
    "variance_min",
    "variance_max",
    "max_bucket_mass",
    "mean_interval_min",
    "mean_interval_max",
)


@dataclass(frozen=True)
class ClassifierPolicy:
    """
    Immutable classifier thresholds.

    Every verdict carries the policy it was measured against. Two
    policies with equal fields have equal content hashes.
    """
    variance_min: float = VARIANCE_MIN
    variance_max: float = VARIANCE_MAX
    max_bucket_mass: float = MAX_BUCKET_MASS
    strict: bool = False
    mean_interval_min: float = MEAN_INTERVAL_MIN
    mean_interval_max: float = MEAN_INTERVAL_MAX
    version: str = "1"

    def __post_init__(self) -> None:
        for name in _FLOAT_FIELDS:
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name}={getattr(self, name)} must be finite")
        if self.variance_min > self.variance_max:
            raise ValueError(
                f"variance_min={self.variance_min} exceeds "
                f"variance_max={self.variance_max}"
            )
        if not 0.0 < self.max_bucket_mass <= 1.0:
            raise ValueError(
                f"max_bucket_mass={self.max_bucket_mass} outside (0, 1]"
            )
        if self.mean_interval_min > self.mean_interval_max:
            raise ValueError(
                f"mean_interval_min={self.mean_interval_min} exceeds "
                f"mean_interval_max={self.mean_interval_max}"
            )

    def to_dict(self) -> dict:
        return {
            "variance_min": self.variance_min,
            "variance_max": self.variance_max,
            "max_bucket_mass": self.max_bucket_mass,
            "strict": self.strict,
            "mean_interval_min": self.mean_interval_min,
            "mean_interval_max": self.mean_interval_max,
            "version": self.version,
        }

    def content_hash(self) -> str:
        """Deterministic hash of policy parameters."""
        blob = json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(blob).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: dict) -> ClassifierPolicy:
        """Build a policy from a mapping; unknown keys are rejected."""
        if not isinstance(data, dict):
            raise EncodingError(f"Policy must be an object, got {type(data).__name__}")
        unknown = set(data) - set(cls().to_dict())
        if unknown:
            raise ValueError(f"Unknown policy fields: {sorted(unknown)}")
        fields = {}
        for name, value in data.items():
            if name in _FLOAT_FIELDS:
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise EncodingError(
                        f"Policy field '{name}' must be a number, got {type(value).__name__}"
                    )
                try:
                    value = float(value)
                except OverflowError as e:
                    raise EncodingError(f"Policy field '{name}' out of range") from e
                if not math.isfinite(value):
                    raise EncodingError(f"Policy field '{name}' must be finite")
            elif name == "strict" and not isinstance(value, bool):
                raise EncodingError("Policy field 'strict' must be a boolean")
            elif name == "version" and not isinstance(value, str):
                raise EncodingError("Policy field 'version' must be a string")
            fields[name] = value
        return cls(**fields)

    @classmethod
    def load(cls, path: Union[str, Path]) -> ClassifierPolicy:
        """Deserialize a policy from JSON."""
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise EncodingError(f"Policy file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise EncodingError(f"Policy file {path} must hold a JSON object")
        return cls.from_dict(data)


# Default thresholds; pass a ClassifierPolicy to override.
CONTRACT = ClassifierPolicy()
