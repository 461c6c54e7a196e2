"""
Verification Tests
"""

import base64
import dataclasses
import hashlib
import json

import pytest

from typeproof.commitment import build_commitment, encode_proof_blob
from typeproof.contract import ClassifierPolicy
from typeproof.errors import MalformedCommitment
from typeproof.fingerprint import KeystrokeFingerprint, extract_fingerprint
from typeproof.hashing import authority_hash, digest
from typeproof.verifier import (
    CommitmentBackend,
    RemoteVerification,
    SimulatedLedger,
    reference_id,
    verify_local,
    verify_remote,
)

from conftest import CONTENT, FIXED_TIMESTAMP


def replace_public(commitment, **changes):
    return dataclasses.replace(
        commitment,
        public_values=dataclasses.replace(commitment.public_values, **changes),
    )


def replace_data(commitment, **changes):
    return dataclasses.replace(
        commitment,
        verification_data=dataclasses.replace(commitment.verification_data, **changes),
    )


class TestVerifyLocal:
    """Tests for verify_local()."""

    def test_untouched_commitments_are_consistent(self, regular_commitment, human_commitment):
        for commitment in (regular_commitment, human_commitment):
            result = verify_local(commitment)
            assert result.consistent is True
            assert result.reasons == []
            assert str(result) == "CONSISTENT"

    def test_wire_forms(self, human_commitment):
        assert verify_local(human_commitment.to_dict()).consistent
        assert verify_local(human_commitment.to_json()).consistent

    def test_swapped_content_hash(self, human_commitment):
        forged = replace_public(human_commitment, content_hash=digest("other text"))
        result = verify_local(forged)
        assert not result.consistent
        assert any("authority_hash" in r for r in result.reasons)
        assert any("content hash" in r for r in result.reasons)

    def test_swapped_content_hash_with_matching_authority(self, human_commitment):
        other = digest("other text")
        forged = replace_public(
            human_commitment,
            content_hash=other,
            authority_hash=authority_hash(FIXED_TIMESTAMP, other),
        )
        result = verify_local(forged)
        assert not result.consistent
        assert result.reasons == ["proof_blob content hash differs from public_values"]

    def test_shifted_timestamp(self, human_commitment):
        forged = replace_public(human_commitment, timestamp=FIXED_TIMESTAMP + 1)
        assert not verify_local(forged).consistent

    @pytest.mark.parametrize("timestamp", [0, 2 ** 63])
    def test_implausible_timestamp(self, human_commitment, timestamp):
        forged = replace_public(human_commitment, timestamp=timestamp)
        result = verify_local(forged)
        assert not result.consistent
        assert any("implausible timestamp" in r for r in result.reasons)

    def test_bad_hash_shape(self, human_commitment):
        forged = replace_public(human_commitment, authority_hash="0x1234")
        result = verify_local(forged)
        assert not result.consistent
        assert "authority_hash is not a 64-character hex digest" in result.reasons

    def test_average_interval_mismatch(self, human_commitment):
        forged = replace_data(human_commitment, average_keystroke_time=100.0)
        result = verify_local(forged)
        assert not result.consistent
        assert any("velocity" in r for r in result.reasons)

    def test_too_few_implied_samples(self, human_commitment):
        forged = replace_data(human_commitment, total_editing_time=400.0)
        result = verify_local(forged)
        assert not result.consistent
        assert any("implies" in r for r in result.reasons)

    def test_garbage_blob_fails_closed(self, human_commitment):
        forged = dataclasses.replace(human_commitment, proof_blob="@@@")
        result = verify_local(forged)
        assert not result.consistent
        assert any("does not decode" in r for r in result.reasons)

    def test_negative_variance_in_blob(self, human_commitment):
        pv = human_commitment.public_values
        blob = encode_proof_blob(pv.content_hash, 2.5, -1.0, pv.timestamp)
        result = verify_local(dataclasses.replace(human_commitment, proof_blob=blob))
        assert not result.consistent
        assert any("invalid variance" in r for r in result.reasons)

    def test_overflowing_velocity_in_blob(self, human_commitment):
        pv = human_commitment.public_values
        text = '["' + pv.content_hash + '",' + "9" * 400 + ",37500.0," + str(pv.timestamp) + "]"
        blob = base64.b64encode(text.encode("ascii")).decode("ascii")
        result = verify_local(dataclasses.replace(human_commitment, proof_blob=blob))
        assert not result.consistent
        assert any("out of range" in r for r in result.reasons)

    def test_oversized_integer_fails_closed(self):
        result = verify_local('{"schema_version": 1' + "1" * 5000 + "}")
        assert not result.consistent

    def test_deep_nesting_fails_closed(self):
        result = verify_local("[" * 100000 + "]" * 100000)
        assert not result.consistent
        assert result.reasons

    def test_overflowing_times_fail_closed(self, human_commitment):
        data = human_commitment.to_dict()
        data["verification_data"]["average_keystroke_time"] = 10 ** 400
        result = verify_local(data)
        assert not result.consistent

    def test_flipped_verdict_detected_by_policy(self, regular_commitment):
        forged = replace_public(regular_commitment, human_verified=True)
        result = verify_local(forged)
        assert not result.consistent
        assert any("human_verified" in r for r in result.reasons)

    def test_flipped_verdict_unchecked_without_policy(self, regular_commitment):
        forged = replace_public(regular_commitment, human_verified=True)
        assert verify_local(forged, policy=None).consistent

    def test_custom_policy(self, regular_fp, fixed_clock):
        policy = ClassifierPolicy(variance_min=100.0)
        commitment = build_commitment(CONTENT, regular_fp, clock=fixed_clock, policy=policy)
        assert commitment.public_values.human_verified is True
        assert verify_local(commitment, policy=policy).consistent
        assert not verify_local(commitment).consistent

    @pytest.mark.parametrize("payload", [None, 42, [], {}, "{", '{"schema_version": 1}'])
    def test_malformed_input_fails_closed(self, payload):
        result = verify_local(payload)
        assert result.consistent is False
        assert bool(result) is False
        assert result.reasons

    def test_unknown_schema_version(self, human_commitment):
        data = human_commitment.to_dict()
        data["schema_version"] = 99
        assert not verify_local(data).consistent

    def test_wrong_field_type_fails_closed(self, human_commitment):
        forged = replace_public(human_commitment, timestamp="yesterday")
        result = verify_local(forged)
        assert not result.consistent


class TestVerifyRemote:
    """Tests for verify_remote() and the simulated ledger."""

    def test_regular_sample_scenario(self, regular_intervals, fixed_clock):
        fp = extract_fingerprint(regular_intervals)
        assert fp.variance == 400.0
        commitment = build_commitment(CONTENT, fp, clock=fixed_clock)
        assert commitment.public_values.human_verified is False

        result = verify_remote(commitment)
        assert result.verified is False
        assert result.reference_id.startswith("0x")
        assert len(result.reference_id) == 42
        expected = hashlib.sha256(commitment.proof_blob.encode("utf-8")).hexdigest()[:40]
        assert result.reference_id == "0x" + expected

    def test_human_sample_verified(self, human_commitment):
        assert verify_remote(human_commitment).verified is True

    def test_idempotent(self, human_commitment):
        assert verify_remote(human_commitment) == verify_remote(human_commitment)

    def test_reference_id_helper(self, human_commitment):
        assert verify_remote(human_commitment).reference_id == reference_id(human_commitment)

    def test_dict_input(self, human_commitment):
        assert verify_remote(human_commitment.to_dict()) == verify_remote(human_commitment)

    def test_malformed_dict_raises(self):
        with pytest.raises(MalformedCommitment):
            verify_remote({"proof_blob": "x"})

    def test_pluggable_ledger(self, human_commitment):
        class RejectingLedger:
            def submit(self, commitment):
                return RemoteVerification(verified=False, reference_id="0x" + "0" * 40)

        result = verify_remote(human_commitment, ledger=RejectingLedger())
        assert result.verified is False
        assert result.to_dict() == {"verified": False, "reference_id": "0x" + "0" * 40}

    def test_simulated_ledger_echoes_flag(self, regular_commitment):
        forged = replace_public(regular_commitment, human_verified=True)
        assert SimulatedLedger().submit(forged).verified is True


class TestCommitmentBackend:
    """Tests for the proof backend seam."""

    def test_prove_and_check(self, human_fp, fixed_clock):
        backend = CommitmentBackend(clock=fixed_clock)
        proof = backend.prove(CONTENT, human_fp)
        assert proof.public_values.timestamp == FIXED_TIMESTAMP
        assert backend.check(CONTENT, proof) is True

    def test_check_binds_statement(self, human_fp, fixed_clock):
        backend = CommitmentBackend(clock=fixed_clock)
        proof = backend.prove(CONTENT, human_fp)
        assert backend.check("a different text", proof) is False

    def test_check_rejects_tampering(self, human_fp, fixed_clock):
        backend = CommitmentBackend(clock=fixed_clock)
        proof = backend.prove(CONTENT, human_fp)
        forged = replace_public(proof, timestamp=FIXED_TIMESTAMP + 5)
        assert backend.check(CONTENT, forged) is False


def test_end_to_end_json_boundary(human_intervals, fixed_clock):
    """Fingerprint and commitment both survive a JSON hop."""
    wire_fp = json.loads(json.dumps(extract_fingerprint(human_intervals).to_dict()))
    fp = KeystrokeFingerprint.from_dict(wire_fp)
    commitment = build_commitment(CONTENT, fp, clock=fixed_clock)
    received = json.loads(commitment.to_json())
    assert verify_local(received).consistent
    remote = verify_remote(received)
    assert remote.verified is True
