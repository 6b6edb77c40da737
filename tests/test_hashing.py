"""
ExamPass Canonicalization and Fingerprint Tests

Fingerprints must be deterministic, order-sensitive and unambiguous about
field boundaries.
"""

import unittest

from exampass import (
    canonicalize,
    canonicalize_str,
    content_hash,
    credential_fingerprint,
    is_fingerprint,
    sha256_hash,
    NaturalKey,
)


class TestCanonicalization(unittest.TestCase):

    def test_keys_sorted_and_compact(self):
        self.assertEqual(
            canonicalize_str({"b": [True, None, "x"], "a": 1}),
            '{"a":1,"b":[true,null,"x"]}'
        )

    def test_tuple_encoded_as_array(self):
        self.assertEqual(canonicalize(("Ada", "M001")), b'["Ada","M001"]')

    def test_unicode_not_escaped(self):
        self.assertEqual(canonicalize_str(["Zoë"]), '["Zoë"]')

    def test_float_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({"amount": 1.5})

    def test_non_string_key_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({1: "x"})

    def test_unsupported_type_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({"x": object()})

    def test_content_hash_vector(self):
        self.assertEqual(
            content_hash({"b": [True, None, "x"], "a": 1}),
            "sha256:eca8cfb31ab74533e1eb2f4c74d2d55dfe3c79ac704787e54be8647ea7777eb1"
        )


class TestFingerprint(unittest.TestCase):

    def test_known_vector(self):
        """fingerprint = SHA-256 of the canonical [name, id] array."""
        self.assertEqual(
            credential_fingerprint("Ada", "M001"),
            "sha256:56ade9f1ffbae39d5539581ee4cbcbe5e9befcb72fb8d6f0f7d502965b5288f9"
        )

    def test_deterministic(self):
        self.assertEqual(credential_fingerprint("Ada", "M001"), credential_fingerprint("Ada", "M001"))

    def test_format(self):
        self.assertTrue(is_fingerprint(credential_fingerprint("Ada", "M001")))
        self.assertFalse(is_fingerprint("sha256:XYZ"))
        self.assertFalse(is_fingerprint(None))

    def test_field_order_matters(self):
        self.assertNotEqual(credential_fingerprint("Ada", "M001"), credential_fingerprint("M001", "Ada"))

    def test_field_boundaries_unambiguous(self):
        """Plain concatenation would make these collide."""
        self.assertNotEqual(credential_fingerprint("ab", "c"), credential_fingerprint("a", "bc"))

    def test_identical_keys_collide(self):
        """Two people with identical natural keys share a fingerprint by design."""
        self.assertEqual(NaturalKey("Ada", "M001").fingerprint(), credential_fingerprint("Ada", "M001"))

    def test_non_string_fields_rejected(self):
        with self.assertRaises(TypeError):
            credential_fingerprint("Ada", 1)

    def test_sha256_hash_prefix(self):
        self.assertTrue(sha256_hash("x").startswith("sha256:"))
        self.assertEqual(sha256_hash("x"), sha256_hash(b"x"))


class TestNaturalKey(unittest.TestCase):

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            NaturalKey("", "M001")

    def test_blank_id_rejected(self):
        with self.assertRaises(ValueError):
            NaturalKey("Ada", "   ")

    def test_non_string_rejected(self):
        with self.assertRaises(TypeError):
            NaturalKey("Ada", 1001)


if __name__ == "__main__":
    unittest.main()
