"""
Human-likeness classifier.

A verdict is the AND of an ordered list of named checks. Each check is a
plain function (fingerprint, policy) -> CheckResult, so a new rule is a
new function appended to the list and can be tested on its own.

The verdict is advisory: it says the timing statistics fall in a range
typical for people, not that a person produced them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from typeproof.contract import CONTRACT, ClassifierPolicy
from typeproof.fingerprint import KeystrokeFingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    reason: str


Check = Callable[[KeystrokeFingerprint, ClassifierPolicy], CheckResult]


@dataclass(frozen=True)
class HumanVerdict:
    """Classifier output, with the thresholds it was measured against."""
    human: bool
    checks: Tuple[CheckResult, ...]
    policy: ClassifierPolicy = field(default=CONTRACT)

    @property
    def failed(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    def to_dict(self) -> dict:
        return {
            "human": self.human,
            "checks": [
                {"name": c.name, "passed": c.passed, "reason": c.reason}
                for c in self.checks
            ],
            "policy": self.policy.to_dict(),
            "policy_hash": self.policy.content_hash(),
        }

    def __bool__(self) -> bool:
        return self.human

    def __str__(self) -> str:
        decision = "HUMAN" if self.human else "NOT HUMAN"
        details = ", ".join(
            f"{c.name}={'pass' if c.passed else 'fail'}" for c in self.checks
        )
        return f"{decision} | policy={self.policy.content_hash()} | {details}"


# ═══════════════════════════════════════════════════════════════════
# CHECKS
# ═══════════════════════════════════════════════════════════════════

def variance_in_range(fp: KeystrokeFingerprint, policy: ClassifierPolicy) -> CheckResult:
    """Fails strictly outside [variance_min, variance_max]; the bounds pass."""
    if fp.variance < policy.variance_min:
        return CheckResult(
            "variance_in_range", False,
            f"variance {fp.variance:.1f} < {policy.variance_min:.1f} (too regular)",
        )
    if fp.variance > policy.variance_max:
        return CheckResult(
            "variance_in_range", False,
            f"variance {fp.variance:.1f} > {policy.variance_max:.1f} (too erratic)",
        )
    return CheckResult("variance_in_range", True, f"variance {fp.variance:.1f} in range")


def no_dominant_bucket(fp: KeystrokeFingerprint, policy: ClassifierPolicy) -> CheckResult:
    """Fails when one speed band holds more than max_bucket_mass of the samples."""
    top = max(range(len(fp.histogram)), key=lambda i: fp.histogram[i])
    mass = fp.histogram[top]
    if mass > policy.max_bucket_mass:
        return CheckResult(
            "no_dominant_bucket", False,
            f"bucket {top} holds {mass:.2f} > {policy.max_bucket_mass:.2f} of samples",
        )
    return CheckResult("no_dominant_bucket", True, f"largest bucket holds {mass:.2f}")


def mean_interval_in_range(fp: KeystrokeFingerprint, policy: ClassifierPolicy) -> CheckResult:
    if not policy.mean_interval_min <= fp.mean <= policy.mean_interval_max:
        return CheckResult(
            "mean_interval_in_range", False,
            f"mean interval {fp.mean:.1f} ms outside "
            f"[{policy.mean_interval_min:.0f}, {policy.mean_interval_max:.0f}]",
        )
    return CheckResult("mean_interval_in_range", True, f"mean interval {fp.mean:.1f} ms")


DEFAULT_CHECKS: tuple = (variance_in_range, no_dominant_bucket)
STRICT_CHECKS: tuple = DEFAULT_CHECKS + (mean_interval_in_range,)


# ═══════════════════════════════════════════════════════════════════
# CLASSIFY
# ═══════════════════════════════════════════════════════════════════

def classify(
    fp: KeystrokeFingerprint,
    policy: ClassifierPolicy = CONTRACT,
    checks: Optional[Sequence[Check]] = None,
) -> HumanVerdict:
    """
    Run every check, in order, and AND the results.

    All checks run even after one fails, so the verdict explains every
    reason for a rejection.
    """
    if checks is None:
        checks = STRICT_CHECKS if policy.strict else DEFAULT_CHECKS
    results = tuple(check(fp, policy) for check in checks)
    verdict = HumanVerdict(
        human=all(r.passed for r in results),
        checks=results,
        policy=policy,
    )
    logger.debug("Classified fingerprint: %s", verdict)
    return verdict


def human_score(variance: float) -> int:
    """
    Advisory 0-100 score from interval variance, for live display.

    Saturates at a variance of 10000 ms^2.
    """
    return int(round(min(100.0, max(0.0, variance / 10000.0 * 100.0))))
