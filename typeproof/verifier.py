"""
Commitment verification.

Two operations:
    result = verify_local(commitment)     # internal consistency, fails closed
    remote = verify_remote(commitment)    # simulated ledger submission

verify_local re-derives everything a commitment discloses that can be
re-derived (authority hash, proof blob fields, velocity from the average
interval) and reports every mismatch. It does not, and cannot, show that
the keystrokes were genuine.

verify_remote stands in for an external registry. SimulatedLedger echoes
the commitment's own human_verified flag; it is a stub boundary for a
real ledger client, not a third-party attestation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Union

from typeproof.commitment import (
    Clock,
    Commitment,
    build_commitment,
    decode_proof_blob,
    system_clock,
)
from typeproof.contract import (
    CONTRACT,
    MAX_TIMESTAMP,
    MIN_SAMPLES,
    SCHEMA_VERSION,
    VELOCITY_REL_TOLERANCE,
    ClassifierPolicy,
)
from typeproof.errors import MalformedCommitment
from typeproof.fingerprint import KeystrokeFingerprint
from typeproof.hashing import authority_hash, digest, is_hex64

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "0x"
REFERENCE_HEX_CHARS = 40


# ═══════════════════════════════════════════════════════════════════
# LOCAL VERIFICATION
# ═══════════════════════════════════════════════════════════════════

@dataclass
class VerificationResult:
    """Result of a local consistency check."""
    consistent: bool
    reasons: List[str] = field(default_factory=list)   # empty when consistent

    @property
    def decision(self) -> str:
        return "CONSISTENT" if self.consistent else "INCONSISTENT"

    def __bool__(self) -> bool:
        return self.consistent

    def __str__(self) -> str:
        if self.consistent:
            return self.decision
        return f"{self.decision} | " + "; ".join(self.reasons)


def _check_commitment(
    commitment: Commitment,
    policy: Optional[ClassifierPolicy],
) -> List[str]:
    reasons: List[str] = []
    pv = commitment.public_values
    vd = commitment.verification_data

    if commitment.schema_version != SCHEMA_VERSION:
        reasons.append(f"unsupported schema_version {commitment.schema_version}")
    if not is_hex64(pv.content_hash):
        reasons.append("content_hash is not a 64-character hex digest")
    if not is_hex64(pv.authority_hash):
        reasons.append("authority_hash is not a 64-character hex digest")
    if not 0 < pv.timestamp < MAX_TIMESTAMP:
        reasons.append(f"implausible timestamp {pv.timestamp}")
    elif pv.authority_hash != authority_hash(pv.timestamp, pv.content_hash):
        reasons.append("authority_hash does not match timestamp and content_hash")

    try:
        blob_hash, velocity, variance, blob_timestamp = decode_proof_blob(commitment.proof_blob)
    except MalformedCommitment as e:
        reasons.append(str(e))
        return reasons

    if blob_hash != pv.content_hash:
        reasons.append("proof_blob content hash differs from public_values")
    if blob_timestamp != pv.timestamp:
        reasons.append("proof_blob timestamp differs from public_values")
    if not math.isfinite(variance) or variance < 0:
        reasons.append(f"invalid variance {variance}")

    avg = vd.average_keystroke_time
    if not math.isfinite(avg) or avg <= 0:
        reasons.append(f"invalid average_keystroke_time {avg}")
    elif not math.isclose(velocity, 1000.0 / avg, rel_tol=VELOCITY_REL_TOLERANCE):
        reasons.append(
            f"velocity {velocity} does not match average interval {avg} ms"
        )
    else:
        implied = vd.total_editing_time / avg
        if not math.isfinite(implied) or implied < MIN_SAMPLES - 1e-6:
            reasons.append(
                f"total_editing_time implies {implied:.2f} samples (< {MIN_SAMPLES})"
            )

    if policy is not None and pv.human_verified and math.isfinite(variance):
        if not policy.variance_min <= variance <= policy.variance_max:
            reasons.append(
                f"human_verified set but variance {variance:.1f} is outside "
                f"policy {policy.content_hash()}"
            )
    return reasons


def verify_local(
    commitment: Union[Commitment, dict, str],
    policy: Optional[ClassifierPolicy] = CONTRACT,
) -> VerificationResult:
    """
    Check a commitment's internal consistency.

    Args:
        commitment: A Commitment, or its wire form (dict or JSON text).
        policy: A human_verified commitment must disclose a variance inside
            this policy's band. None skips the check.

    Returns:
        VerificationResult. Never raises for malformed input; any decode
        or schema error yields consistent=False.
    """
    if not isinstance(commitment, Commitment):
        try:
            if isinstance(commitment, (str, bytes)):
                commitment = Commitment.from_json(commitment)
            else:
                commitment = Commitment.from_dict(commitment)
        except MalformedCommitment as e:
            logger.warning("Rejected malformed commitment: %s", e)
            return VerificationResult(consistent=False, reasons=[str(e)])

    try:
        reasons = _check_commitment(commitment, policy)
    except (TypeError, ValueError, OverflowError, AttributeError) as e:
        reasons = [f"malformed field: {e}"]
    if reasons:
        logger.warning(
            "Commitment %s inconsistent: %s",
            str(commitment.public_values.content_hash)[:16], "; ".join(reasons),
        )
    return VerificationResult(consistent=not reasons, reasons=reasons)


# ═══════════════════════════════════════════════════════════════════
# REMOTE (LEDGER) VERIFICATION
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RemoteVerification:
    verified: bool
    reference_id: str

    def to_dict(self) -> dict:
        return {"verified": self.verified, "reference_id": self.reference_id}


def reference_id(commitment: Commitment) -> str:
    """Deterministic transaction-shaped identifier: 0x + 40 hex chars."""
    return REFERENCE_PREFIX + digest(commitment.proof_blob)[:REFERENCE_HEX_CHARS]


class Ledger(Protocol):
    def submit(self, commitment: Commitment) -> RemoteVerification: ...


class SimulatedLedger:
    """
    In-process stand-in for a ledger or registry.

    Holds no state; submitting the same commitment twice returns the
    same result.
    """

    def submit(self, commitment: Commitment) -> RemoteVerification:
        result = RemoteVerification(
            verified=commitment.public_values.human_verified,
            reference_id=reference_id(commitment),
        )
        logger.info(
            "Simulated ledger submission %s (verified=%s)",
            result.reference_id, result.verified,
        )
        return result


def verify_remote(
    commitment: Union[Commitment, dict],
    ledger: Optional[Ledger] = None,
) -> RemoteVerification:
    """
    Submit a commitment to a ledger and report its answer.

    Raises:
        MalformedCommitment: If a wire-form dict does not validate.
    """
    if not isinstance(commitment, Commitment):
        commitment = Commitment.from_dict(commitment)
    if ledger is None:
        ledger = SimulatedLedger()
    return ledger.submit(commitment)


# ═══════════════════════════════════════════════════════════════════
# PROOF BACKEND SEAM
# ═══════════════════════════════════════════════════════════════════

class ProofBackend(Protocol):
    """What a real proof system would plug in as."""

    def prove(self, statement: str, witness: KeystrokeFingerprint) -> Commitment: ...

    def check(self, statement: str, proof: Commitment) -> bool: ...


class CommitmentBackend:
    """
    ProofBackend over hash commitments.

    The statement is the content, the witness the fingerprint. check()
    is consistency plus content binding; it is not zero-knowledge.
    """

    def __init__(
        self,
        policy: ClassifierPolicy = CONTRACT,
        clock: Clock = system_clock,
    ) -> None:
        self._policy = policy
        self._clock = clock

    def prove(self, statement: str, witness: KeystrokeFingerprint) -> Commitment:
        return build_commitment(statement, witness, clock=self._clock, policy=self._policy)

    def check(self, statement: str, proof: Commitment) -> bool:
        if proof.public_values.content_hash != digest(statement):
            return False
        return verify_local(proof, policy=self._policy).consistent
