"""
typeproof: Typing Commitments
=============================
Bind a piece of text to a behavioral fingerprint of how it was typed.

Public API:
    fp = typeproof.extract_fingerprint(intervals)
    verdict = typeproof.classify(fp)
    commitment = typeproof.build_commitment(content, fp)
    result = typeproof.verify_local(commitment)
    remote = typeproof.verify_remote(commitment)

A commitment is reproducible and tamper-evident. It is not a
zero-knowledge proof: velocity and variance are disclosed, and the
human verdict is a heuristic over timings the prover supplies.
"""

__version__ = "0.1.0"

from typeproof.contract import ClassifierPolicy, CONTRACT
from typeproof.errors import (
    DegenerateInput,
    EncodingError,
    InsufficientData,
    MalformedCommitment,
    TypeProofError,
)
from typeproof.hashing import digest
from typeproof.fingerprint import KeystrokeFingerprint, extract_fingerprint
from typeproof.classifier import HumanVerdict, classify, human_score
from typeproof.commitment import (
    Commitment,
    PublicValues,
    VerificationData,
    build_commitment,
)
from typeproof.verifier import (
    RemoteVerification,
    VerificationResult,
    verify_local,
    verify_remote,
)

__all__ = [
    "ClassifierPolicy",
    "CONTRACT",
    "TypeProofError",
    "InsufficientData",
    "DegenerateInput",
    "MalformedCommitment",
    "EncodingError",
    "digest",
    "KeystrokeFingerprint",
    "extract_fingerprint",
    "HumanVerdict",
    "classify",
    "human_score",
    "Commitment",
    "PublicValues",
    "VerificationData",
    "build_commitment",
    "VerificationResult",
    "RemoteVerification",
    "verify_local",
    "verify_remote",
]
