"""
Verification Receipts for ExamPass.

A VERIFICATION_RECEIPT records that an invigilator checked a pass and what
the registry reported about its holder at that moment. Receipts are signed
over their canonical JSON body so they can be checked later without access
to the registry.
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .canonicalization import canonicalize
from .hashing import content_hash
from .models import PassVerification
from .signing import SigningService, verify_signature

RECEIPT_VERSION = "1"


def build_verification_receipt(
    verification: PassVerification,
    invigilator: str,
    holder: str,
    verified_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Build an unsigned VERIFICATION_RECEIPT.

    Args:
        verification: The result returned by VerificationService.verify
        invigilator: Identity of the invigilator who verified the pass
        holder: Ledger owner of the pass at verification time
        verified_at: Verification time (defaults to now)

    Returns:
        Unsigned receipt dict
    """
    verified_at = verified_at or datetime.now(timezone.utc)
    result = verification.to_dict()
    return {
        "exampass_version": RECEIPT_VERSION,
        "artifact_type": "VERIFICATION_RECEIPT",
        "receipt_id": secrets.token_hex(16),
        "pass_id": verification.pass_id,
        "holder": holder,
        "invigilator": invigilator,
        "verified_at": verified_at.isoformat().replace("+00:00", "Z"),
        "result": result,
        "result_hash": content_hash(result),
        "nonce": secrets.token_hex(16),
    }


def receipt_body_for_signing(receipt: Dict[str, Any]) -> Dict[str, Any]:
    """Receipt without its signatures field."""
    body = dict(receipt)
    body.pop("signatures", None)
    return body


def sign_receipt(receipt: Dict[str, Any], signer: SigningService) -> Dict[str, Any]:
    """Return a copy of ``receipt`` carrying a signature over its body."""
    body = receipt_body_for_signing(receipt)
    signed = dict(body)
    signed["signatures"] = [signer.sign(canonicalize(body))]
    return signed


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _within_key_validity(verified_at: Any, entry: Dict[str, Any]) -> bool:
    try:
        issued = _parse_timestamp(verified_at)
        if entry.get("valid_from") and issued < _parse_timestamp(entry["valid_from"]):
            return False
        if entry.get("valid_until") and issued > _parse_timestamp(entry["valid_until"]):
            return False
    except (AttributeError, TypeError, ValueError):
        return False
    return True


def verify_receipt_signature(receipt: Dict[str, Any], trust_store: Dict[str, Any]) -> bool:
    """
    Verify the signature on a receipt against a trust store.

    Checks:
    1. A signature is present and names a key in the trust store
    2. result_hash matches the embedded result
    3. The receipt was issued inside the signing key's validity window
    4. The Ed25519 signature verifies over the canonical body

    Returns:
        True if the receipt is authentic, False otherwise
    """
    sigs = receipt.get("signatures") or []
    if not sigs or not isinstance(sigs[0], dict):
        return False

    sig = sigs[0]
    entry = trust_store.get(sig.get("key_id", ""))
    if not entry:
        return False

    if not _within_key_validity(receipt.get("verified_at"), entry):
        return False

    result = receipt.get("result")
    if not isinstance(result, dict):
        return False
    try:
        if content_hash(result) != receipt.get("result_hash"):
            return False
        data = canonicalize(receipt_body_for_signing(receipt))
    except ValueError:
        return False

    return verify_signature(data, sig.get("sig", ""), entry.get("public_key", ""))
