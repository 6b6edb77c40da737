"""
ExamPass Receipt Signing

Ed25519 (RFC 8032) signatures over canonical JSON, used to sign
verification receipts handed to invigilators.
"""

import base64
import json
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Union

from nacl.signing import SigningKey, VerifyKey
from nacl.exceptions import BadSignatureError


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes."""
    return base64.b64decode(s.encode('ascii'))


@dataclass
class KeyPair:
    """Ed25519 key pair."""
    key_id: str
    signing_key: bytes
    verify_key: bytes
    valid_from: datetime
    valid_until: datetime
    algorithm: str = "Ed25519"

    def to_trust_store_entry(self) -> Dict[str, Any]:
        """Public half in trust store entry format."""
        return {
            "key_id": self.key_id,
            "algorithm": self.algorithm,
            "public_key": b64e(self.verify_key),
            "valid_from": self.valid_from.isoformat().replace("+00:00", "Z"),
            "valid_until": self.valid_until.isoformat().replace("+00:00", "Z"),
        }


class SigningService:
    """
    Holds receipt signing keys and signs with the active one.

    Usage:
        signer = SigningService()
        signer.generate_key_pair("kid:exampass-receipts-001")
        sig = signer.sign(canonical_bytes)
    """

    def __init__(self):
        self._keys: Dict[str, KeyPair] = {}
        self._active_key_id: Optional[str] = None
        self._lock = threading.Lock()

    def generate_key_pair(self, key_id: str, validity_days: int = 365) -> KeyPair:
        """Generate, register and return a new Ed25519 key pair."""
        signing_key = SigningKey.generate()
        now = datetime.now(timezone.utc)
        key_pair = KeyPair(
            key_id=key_id,
            signing_key=bytes(signing_key),
            verify_key=bytes(signing_key.verify_key),
            valid_from=now,
            valid_until=now + timedelta(days=validity_days),
        )
        self.add_key_pair(key_pair)
        return key_pair

    def add_key_pair(self, key_pair: KeyPair) -> None:
        with self._lock:
            self._keys[key_pair.key_id] = key_pair
            if self._active_key_id is None:
                self._active_key_id = key_pair.key_id

    def set_active_key(self, key_id: str) -> None:
        with self._lock:
            if key_id not in self._keys:
                raise ValueError(f"Key not found: {key_id}")
            self._active_key_id = key_id

    @property
    def active_key_id(self) -> Optional[str]:
        return self._active_key_id

    def sign(self, data: bytes, key_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Sign data with Ed25519.

        Returns:
            Signature dict with key_id, algorithm and base64 signature
        """
        with self._lock:
            key_id = key_id or self._active_key_id
            if not key_id:
                raise ValueError("No signing key available")
            key_pair = self._keys.get(key_id)
        if not key_pair:
            raise ValueError(f"Key not found: {key_id}")

        now = datetime.now(timezone.utc)
        if now < key_pair.valid_from or now > key_pair.valid_until:
            raise ValueError(f"Key {key_id} is not currently valid")

        signature = SigningKey(key_pair.signing_key).sign(data).signature
        return {
            "signer_role": "ExamPass",
            "key_id": key_id,
            "algorithm": "Ed25519",
            "sig": b64e(signature),
        }

    def trust_store(self) -> Dict[str, Any]:
        """Public keys of every registered key pair, keyed by key id."""
        with self._lock:
            return {kid: kp.to_trust_store_entry() for kid, kp in self._keys.items()}


def verify_signature(data: bytes, signature_b64: str, verify_key_b64: str) -> bool:
    """Verify an Ed25519 signature. Malformed input verifies as False."""
    try:
        VerifyKey(b64d(verify_key_b64)).verify(data, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def save_key_pair(key_pair: KeyPair, path: Union[str, Path]) -> None:
    """Write a key pair to a JSON key file readable only by the owner."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    raw = {
        "kid": key_pair.key_id,
        "private_key_b64": b64e(key_pair.signing_key),
        "public_key_b64": b64e(key_pair.verify_key),
        "valid_from": key_pair.valid_from.isoformat().replace("+00:00", "Z"),
        "valid_until": key_pair.valid_until.isoformat().replace("+00:00", "Z"),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(raw, f, indent=2)
    os.chmod(path, 0o600)


def load_key_pair(path: Union[str, Path]) -> KeyPair:
    """Read a key pair written by ``save_key_pair``."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    signing_key = SigningKey(b64d(raw["private_key_b64"]))
    return KeyPair(
        key_id=raw["kid"],
        signing_key=bytes(signing_key),
        verify_key=bytes(signing_key.verify_key),
        valid_from=datetime.fromisoformat(raw["valid_from"].replace("Z", "+00:00")),
        valid_until=datetime.fromisoformat(raw["valid_until"].replace("Z", "+00:00")),
    )
