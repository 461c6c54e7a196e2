"""
Typing Commitment: proof blob construction, wire schema and serialization.

A Commitment binds {content, fingerprint, verdict, timestamp} together:

    commitment = build_commitment(content, fp)
    commitment.save("proof.json")
    commitment = Commitment.load("proof.json")

This is a hash-based commitment, not a zero-knowledge proof. The proof
blob carries velocity and variance in the clear, and nothing stops a
prover from fabricating the keystroke stream it was built from. What it
does give a third party is reproducibility and tamper evidence: any edit
to the disclosed fields breaks the consistency checks in verifier.py.

Canonical encoding:
    content_hash   = sha256(utf8(content))
    authority_hash = sha256(ascii(str(timestamp)) + content_hash)
    proof_blob     = base64(json([content_hash, velocity, variance, timestamp]))
                     compact separators, standard alphabet
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

from typeproof.classifier import classify
from typeproof.contract import CONTRACT, SCHEMA_VERSION, ClassifierPolicy
from typeproof.errors import EncodingError, MalformedCommitment
from typeproof.fingerprint import KeystrokeFingerprint
from typeproof.hashing import authority_hash, digest

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# ═══════════════════════════════════════════════════════════════════
# WIRE RECORDS
# ═══════════════════════════════════════════════════════════════════

def _require(data: dict, key: str, types: tuple, where: str):
    if key not in data:
        raise MalformedCommitment(f"{where}: missing field '{key}'")
    value = data[key]
    # bool is an int subclass; never accept it for a numeric field.
    if isinstance(value, bool) and bool not in types:
        raise MalformedCommitment(f"{where}: field '{key}' must not be a boolean")
    if not isinstance(value, types):
        names = "/".join(t.__name__ for t in types)
        raise MalformedCommitment(
            f"{where}: field '{key}' must be {names}, got {type(value).__name__}"
        )
    return value


def _as_float(data: dict, key: str) -> float:
    value = _require(data, key, (int, float), "verification_data")
    try:
        return float(value)
    except OverflowError as e:
        raise MalformedCommitment(f"verification_data: field '{key}' out of range") from e


@dataclass(frozen=True)
class PublicValues:
    """The disclosed, non-sensitive summary of a commitment."""
    content_hash: str
    authority_hash: str
    human_verified: bool
    timestamp: int                 # epoch milliseconds

    def to_dict(self) -> dict:
        return {
            "content_hash": self.content_hash,
            "authority_hash": self.authority_hash,
            "human_verified": self.human_verified,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PublicValues:
        if not isinstance(data, dict):
            raise MalformedCommitment("public_values must be an object")
        timestamp = _require(data, "timestamp", (int,), "public_values")
        if timestamp < 0:
            raise MalformedCommitment("public_values: timestamp must be non-negative")
        return cls(
            content_hash=_require(data, "content_hash", (str,), "public_values"),
            authority_hash=_require(data, "authority_hash", (str,), "public_values"),
            human_verified=_require(data, "human_verified", (bool,), "public_values"),
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class VerificationData:
    """Descriptive metadata carried alongside for display."""
    word_count: int
    average_keystroke_time: float
    total_editing_time: float

    def to_dict(self) -> dict:
        return {
            "word_count": self.word_count,
            "average_keystroke_time": self.average_keystroke_time,
            "total_editing_time": self.total_editing_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> VerificationData:
        if not isinstance(data, dict):
            raise MalformedCommitment("verification_data must be an object")
        word_count = _require(data, "word_count", (int,), "verification_data")
        if word_count < 0:
            raise MalformedCommitment("verification_data: word_count must be non-negative")
        return cls(
            word_count=word_count,
            average_keystroke_time=_as_float(data, "average_keystroke_time"),
            total_editing_time=_as_float(data, "total_editing_time"),
        )


@dataclass(frozen=True)
class Commitment:
    """
    A typing commitment (the "proof").

    Value object: built once by build_commitment, serialized across the
    boundary and reconstructed identically by the verifier.
    """
    proof_blob: str
    public_values: PublicValues
    verification_data: VerificationData
    schema_version: int = SCHEMA_VERSION

    @property
    def pattern_hash(self) -> str:
        """Identifier of the proof: sha256 over the decoded proof components."""
        return digest(decode_proof_blob(self.proof_blob, as_text=True))

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "proof_blob": self.proof_blob,
            "public_values": self.public_values.to_dict(),
            "verification_data": self.verification_data.to_dict(),
        }

    def to_json(self, indent: int = None) -> str:
        try:
            return json.dumps(
                self.to_dict(), indent=indent, sort_keys=True, allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Cannot serialize commitment: {e}") from e

    @classmethod
    def from_dict(cls, data: dict) -> Commitment:
        """Validate a wire-form mapping. Raises MalformedCommitment."""
        if not isinstance(data, dict):
            raise MalformedCommitment("Commitment must be a JSON object")
        version = _require(data, "schema_version", (int,), "commitment")
        if version != SCHEMA_VERSION:
            raise MalformedCommitment(
                f"Unsupported schema_version {version} (expected {SCHEMA_VERSION})"
            )
        blob = _require(data, "proof_blob", (str,), "commitment")
        if not blob:
            raise MalformedCommitment("commitment: proof_blob is empty")
        return cls(
            proof_blob=blob,
            public_values=PublicValues.from_dict(
                _require(data, "public_values", (dict,), "commitment")
            ),
            verification_data=VerificationData.from_dict(
                _require(data, "verification_data", (dict,), "commitment")
            ),
            schema_version=version,
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> Commitment:
        try:
            data = json.loads(text)
        except (ValueError, RecursionError) as e:
            raise MalformedCommitment(f"Commitment is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, path: Union[str, Path]) -> None:
        """Serialize commitment to JSON."""
        path = Path(path)
        text = self.to_json(indent=2)
        with open(path, "w") as f:
            f.write(text)
            f.write("\n")

    @classmethod
    def load(cls, path: Union[str, Path]) -> Commitment:
        """Deserialize commitment from JSON."""
        path = Path(path)
        with open(path) as f:
            return cls.from_json(f.read())


# ═══════════════════════════════════════════════════════════════════
# PROOF BLOB
# ═══════════════════════════════════════════════════════════════════

def encode_proof_blob(
    content_hash: str,
    velocity: float,
    variance: float,
    timestamp: int,
) -> str:
    components = [content_hash, float(velocity), float(variance), int(timestamp)]
    try:
        text = json.dumps(components, separators=(",", ":"), allow_nan=False)
    except ValueError as e:
        raise EncodingError(f"Proof components are not encodable: {e}") from e
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_proof_blob(blob: str, as_text: bool = False):
    """
    Decode a proof blob into [content_hash, velocity, variance, timestamp].

    Raises:
        MalformedCommitment: On any base64, JSON or shape error.
    """
    try:
        text = base64.b64decode(blob.encode("ascii"), validate=True).decode("utf-8")
        components = json.loads(text)
    except (binascii.Error, ValueError, RecursionError, AttributeError) as e:
        raise MalformedCommitment(f"proof_blob does not decode: {e}") from e

    if not isinstance(components, list) or len(components) != 4:
        raise MalformedCommitment("proof_blob must hold a 4-element array")
    content_hash, velocity, variance, timestamp = components
    if not isinstance(content_hash, str):
        raise MalformedCommitment("proof_blob: content hash must be a string")
    for name, value in (("velocity", velocity), ("variance", variance)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedCommitment(f"proof_blob: {name} must be a number")
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        raise MalformedCommitment("proof_blob: timestamp must be an integer")

    try:
        velocity, variance = float(velocity), float(variance)
    except OverflowError as e:
        raise MalformedCommitment("proof_blob: velocity or variance out of range") from e

    if as_text:
        return text
    return [content_hash, velocity, variance, timestamp]


# ═══════════════════════════════════════════════════════════════════
# BUILD
# ═══════════════════════════════════════════════════════════════════

def count_words(content: str) -> int:
    return len(content.split())


def build_commitment(
    content: str,
    fp: KeystrokeFingerprint,
    clock: Clock = system_clock,
    policy: ClassifierPolicy = CONTRACT,
) -> Commitment:
    """
    Build a commitment over content and its typing fingerprint.

    Args:
        content: The text that was typed.
        fp: Fingerprint from extract_fingerprint(); nothing else is accepted,
            so a failed extraction always blocks proof generation.
        clock: Epoch-millisecond time source, read exactly once.
        policy: Classifier thresholds for the human_verified flag.

    Returns:
        A fully populated Commitment.
    """
    if not isinstance(fp, KeystrokeFingerprint):
        raise TypeError(
            f"build_commitment needs a KeystrokeFingerprint, got {type(fp).__name__}"
        )
    if not isinstance(content, str):
        raise TypeError(f"content must be str, got {type(content).__name__}")

    now = int(clock())
    content_hash = digest(content)
    verdict = classify(fp, policy)

    public_values = PublicValues(
        content_hash=content_hash,
        authority_hash=authority_hash(now, content_hash),
        human_verified=verdict.human,
        timestamp=now,
    )
    verification_data = VerificationData(
        word_count=count_words(content),
        average_keystroke_time=fp.mean,
        total_editing_time=fp.total_time,
    )
    commitment = Commitment(
        proof_blob=encode_proof_blob(content_hash, fp.velocity, fp.variance, now),
        public_values=public_values,
        verification_data=verification_data,
    )
    logger.info(
        "Built commitment %s (human_verified=%s, words=%d)",
        content_hash[:16], verdict.human, verification_data.word_count,
    )
    return commitment
