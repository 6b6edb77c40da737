"""
ExamPass Receipt Signing Tests

Signed verification receipts must verify, and any tampering must be detected.
"""

import copy
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from exampass import (
    PassVerification,
    SigningService,
    build_verification_receipt,
    content_hash,
    load_key_pair,
    save_key_pair,
    verify_receipt_signature,
)
from exampass.receipts import sign_receipt
from exampass.signing import verify_signature


def _verification():
    return PassVerification(
        name="Ada",
        matric_number="M001",
        registered=True,
        paid=True,
        pass_id=0,
        sequential_id=1,
    )


class TestSigningService(unittest.TestCase):

    def setUp(self):
        self.signer = SigningService()
        self.kp = self.signer.generate_key_pair("kid:test-001")

    def test_sign_and_verify(self):
        sig = self.signer.sign(b"payload")
        self.assertEqual(sig["key_id"], "kid:test-001")
        self.assertEqual(sig["algorithm"], "Ed25519")
        pub = self.signer.trust_store()["kid:test-001"]["public_key"]
        self.assertTrue(verify_signature(b"payload", sig["sig"], pub))
        self.assertFalse(verify_signature(b"tampered", sig["sig"], pub))

    def test_malformed_signature_is_false(self):
        pub = self.signer.trust_store()["kid:test-001"]["public_key"]
        self.assertFalse(verify_signature(b"payload", "not base64!", pub))

    def test_first_key_active(self):
        self.signer.generate_key_pair("kid:test-002")
        self.assertEqual(self.signer.active_key_id, "kid:test-001")
        self.signer.set_active_key("kid:test-002")
        self.assertEqual(self.signer.sign(b"x")["key_id"], "kid:test-002")

    def test_unknown_active_key(self):
        with self.assertRaises(ValueError):
            self.signer.set_active_key("kid:missing")

    def test_no_key(self):
        with self.assertRaises(ValueError):
            SigningService().sign(b"x")

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "keys" / "signing.json"
            save_key_pair(self.kp, path)
            loaded = load_key_pair(path)

        self.assertEqual(loaded.key_id, self.kp.key_id)
        self.assertEqual(loaded.verify_key, self.kp.verify_key)
        self.assertEqual(loaded.to_trust_store_entry(), self.kp.to_trust_store_entry())


class TestVerificationReceipt(unittest.TestCase):

    def setUp(self):
        self.signer = SigningService()
        self.kp = self.signer.generate_key_pair("kid:test-001")
        self.kp.valid_from = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.trust_store = self.signer.trust_store()
        receipt = build_verification_receipt(
            _verification(), "0xgrace", "0xada",
            verified_at=datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)
        )
        self.receipt = sign_receipt(receipt, self.signer)

    def test_receipt_fields(self):
        r = self.receipt
        self.assertEqual(r["artifact_type"], "VERIFICATION_RECEIPT")
        self.assertEqual(r["verified_at"], "2026-06-01T09:00:00Z")
        self.assertEqual(r["result"]["paid"], True)
        self.assertTrue(r["result_hash"].startswith("sha256:"))

    def test_valid(self):
        self.assertTrue(verify_receipt_signature(self.receipt, self.trust_store))

    def test_tampered_result(self):
        tampered = copy.deepcopy(self.receipt)
        tampered["result"]["paid"] = False
        self.assertFalse(verify_receipt_signature(tampered, self.trust_store))

    def test_tampered_result_with_recomputed_hash(self):
        tampered = copy.deepcopy(self.receipt)
        tampered["result"]["name"] = "Mallory"
        tampered["result_hash"] = content_hash(tampered["result"])
        self.assertFalse(verify_receipt_signature(tampered, self.trust_store))

    def test_tampered_holder(self):
        tampered = copy.deepcopy(self.receipt)
        tampered["holder"] = "0xmallory"
        self.assertFalse(verify_receipt_signature(tampered, self.trust_store))

    def test_untrusted_key(self):
        other = SigningService()
        other.generate_key_pair("kid:test-001")
        self.assertFalse(verify_receipt_signature(self.receipt, other.trust_store()))

    def test_unsigned(self):
        unsigned = dict(self.receipt)
        unsigned.pop("signatures")
        self.assertFalse(verify_receipt_signature(unsigned, self.trust_store))

    def test_verified_after_key_expiry(self):
        trust_store = copy.deepcopy(self.trust_store)
        trust_store["kid:test-001"]["valid_until"] = "2026-05-31T00:00:00Z"
        self.assertFalse(verify_receipt_signature(self.receipt, trust_store))

    def test_verified_before_key_valid(self):
        trust_store = copy.deepcopy(self.trust_store)
        trust_store["kid:test-001"]["valid_from"] = "2026-06-02T00:00:00Z"
        self.assertFalse(verify_receipt_signature(self.receipt, trust_store))

    def test_unparsable_verified_at(self):
        tampered = copy.deepcopy(self.receipt)
        tampered["verified_at"] = "yesterday"
        self.assertFalse(verify_receipt_signature(tampered, self.trust_store))

    def test_key_expired_after_signing_still_verifies_old_receipt(self):
        self.kp.valid_until = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc) + timedelta(days=1)
        self.assertTrue(verify_receipt_signature(self.receipt, self.signer.trust_store()))

    def test_receipt_ids_unique(self):
        a = build_verification_receipt(_verification(), "0xgrace", "0xada")
        b = build_verification_receipt(_verification(), "0xgrace", "0xada")
        self.assertNotEqual(a["receipt_id"], b["receipt_id"])


if __name__ == "__main__":
    unittest.main()
