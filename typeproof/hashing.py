"""
Content addressing.

All hashes in a commitment go through digest() so that client and
verifier agree byte for byte: text is always UTF-8, digests are always
lowercase hex.
"""

from __future__ import annotations

import hashlib
import re
from typing import Union

HEX64 = re.compile(r"^[0-9a-f]{64}$")


def digest(data: Union[bytes, str]) -> str:
    """SHA-256 hex digest of bytes, or of text encoded as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def authority_hash(timestamp: int, content_hash: str) -> str:
    """Bind a timestamp to a content hash. Timestamp (base-10 ASCII) first."""
    return digest(f"{int(timestamp)}{content_hash}")


def is_hex64(value: object) -> bool:
    return isinstance(value, str) and HEX64.match(value) is not None
