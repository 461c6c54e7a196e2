"""
typeproof Test Fixtures
"""

import pytest

from typeproof.commitment import build_commitment
from typeproof.fingerprint import extract_fingerprint

FIXED_TIMESTAMP = 1700000000000
CONTENT = "the quick brown fox"


@pytest.fixture
def fixed_clock():
    """Clock pinned to FIXED_TIMESTAMP."""
    return lambda: FIXED_TIMESTAMP


@pytest.fixture
def regular_intervals():
    """30 samples alternating 180/220 ms: mean 200, variance 400."""
    return [180.0, 220.0] * 15


@pytest.fixture
def human_intervals():
    """
    30 samples, mean 400, variance 37500.

    Buckets: 0.2, 0.3, 0.3, 0.2, 0.0.
    """
    return [100.0, 300.0, 500.0, 700.0, 150.0, 350.0, 550.0, 250.0, 450.0, 650.0] * 3


@pytest.fixture
def regular_fp(regular_intervals):
    return extract_fingerprint(regular_intervals)


@pytest.fixture
def human_fp(human_intervals):
    return extract_fingerprint(human_intervals)


@pytest.fixture
def regular_commitment(regular_fp, fixed_clock):
    return build_commitment(CONTENT, regular_fp, clock=fixed_clock)


@pytest.fixture
def human_commitment(human_fp, fixed_clock):
    return build_commitment(CONTENT, human_fp, clock=fixed_clock)
