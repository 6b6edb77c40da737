"""
ExamPass Hashing

Credential fingerprints and content digests. All hashes use SHA-256 with
lowercase hexadecimal output and a "sha256:" prefix.
"""

import hashlib
import re
from typing import Union

from .canonicalization import canonicalize


FINGERPRINT_PATTERN = re.compile(r'^sha256:[0-9a-f]{64}$')


def sha256_hash(data: Union[bytes, str]) -> str:
    """
    Compute SHA-256 hash in ExamPass format.

    Returns:
        Hash string in format "sha256:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.sha256(data).hexdigest().lower()
    return f"sha256:{digest}"


def credential_fingerprint(name: str, id_field: str) -> str:
    """
    Compute the credential fingerprint of a natural key.

    fingerprint = SHA-256(CJE([name, id_field]))

    The tuple order is fixed (name, then id field) and encoded as a JSON array,
    so ("ab", "c") and ("a", "bc") never collide.
    """
    if not isinstance(name, str) or not isinstance(id_field, str):
        raise TypeError("natural key fields must be strings")
    return sha256_hash(canonicalize([name, id_field]))


def content_hash(obj) -> str:
    """Hash of the canonical JSON encoding of ``obj``."""
    return sha256_hash(canonicalize(obj))


def is_fingerprint(value) -> bool:
    """Check that ``value`` is a well-formed fingerprint string."""
    return isinstance(value, str) and FINGERPRINT_PATTERN.match(value) is not None

