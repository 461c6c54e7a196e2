"""Error taxonomy. Every failure the core reports is one of these."""

from __future__ import annotations


class TypeProofError(ValueError):
    """Base class for all typeproof failures."""


class InsufficientData(TypeProofError):
    """Fewer timing samples than the contract's minimum."""


class DegenerateInput(TypeProofError):
    """Samples that cannot yield a fingerprint (zero mean, NaN, negatives)."""


class MalformedCommitment(TypeProofError):
    """A commitment or fingerprint that does not match the wire schema."""


class EncodingError(TypeProofError):
    """Serialization failure at the boundary."""
