"""
ExamPass Configuration and Lock Table Tests
"""

import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from exampass import InMemoryLedger, StaticAccessGate, build_system
from exampass import config
from exampass.locks import KeyedLock


class TestValidateConfig(unittest.TestCase):

    def test_default_checks(self):
        with mock.patch.object(config, "SIGNING_KEY_PATH", "/nonexistent/signing.json"):
            checks = config.validate_config()
        self.assertTrue(checks["env"])
        self.assertTrue(checks["ledger_backend"])
        self.assertTrue(checks["log_level"])
        self.assertTrue(checks["admin_identity"])
        self.assertNotIn("signing_key", checks)

    def test_configured_signing_key_checked(self):
        with tempfile.TemporaryDirectory() as tmp:
            key_path = Path(tmp) / "signing.json"
            key_path.write_text("{}", encoding="utf-8")
            with mock.patch.object(config, "SIGNING_KEY_PATH", str(key_path)):
                self.assertTrue(config.validate_config()["signing_key"])

    def test_unknown_env_and_backend(self):
        with mock.patch.object(config, "ENV", "qa"), mock.patch.object(config, "LEDGER_BACKEND", "redis"):
            checks = config.validate_config()
        self.assertFalse(checks["env"])
        self.assertFalse(checks["ledger_backend"])

    def test_default_admin_refused_in_production(self):
        with mock.patch.object(config, "ENV", "prod"), \
                mock.patch.object(config, "ADMIN_IDENTITY", config.DEFAULT_ADMIN_IDENTITY):
            self.assertFalse(config.validate_config()["admin_identity"])
        with mock.patch.object(config, "ENV", "prod"), mock.patch.object(config, "ADMIN_IDENTITY", "registrar"):
            self.assertTrue(config.validate_config()["admin_identity"])

    def test_flags(self):
        with mock.patch.object(config, "ENV", "prod"):
            self.assertTrue(config.is_production())
        with mock.patch.object(config, "ENV", "dev"):
            self.assertFalse(config.is_production())
        with mock.patch.dict("os.environ", {"EXAMPASS_DEBUG": "1"}):
            self.assertTrue(config.is_debug())
        with mock.patch.dict("os.environ", {"EXAMPASS_DEBUG": ""}):
            self.assertFalse(config.is_debug())


class TestProductionAdminGuard(unittest.TestCase):

    def test_default_admin_rejected(self):
        with mock.patch.object(config, "ENV", "prod"), \
                mock.patch.object(config, "ADMIN_IDENTITY", config.DEFAULT_ADMIN_IDENTITY):
            with self.assertRaises(ValueError):
                build_system(ledger=InMemoryLedger())
            with self.assertRaises(ValueError):
                build_system(admin="admin", ledger=InMemoryLedger())

    def test_named_admin_accepted(self):
        with mock.patch.object(config, "ENV", "prod"):
            system = build_system(admin="registrar", ledger=InMemoryLedger())
        self.assertTrue(system.access.is_admin("registrar"))

    def test_explicit_gate_accepted(self):
        with mock.patch.object(config, "ENV", "prod"):
            system = build_system(access=StaticAccessGate("admin"), ledger=InMemoryLedger())
        self.assertTrue(system.access.is_admin("admin"))

    def test_default_admin_allowed_outside_production(self):
        with mock.patch.object(config, "ENV", "dev"):
            system = build_system(ledger=InMemoryLedger())
        self.assertIsNotNone(system.admin)


class TestKeyedLock(unittest.TestCase):

    def test_entries_dropped_after_release(self):
        locks = KeyedLock("test")
        with locks.hold("a"):
            with locks.hold("b"):
                self.assertEqual(locks.active_keys(), 2)
        self.assertEqual(locks.active_keys(), 0)

    def test_same_key_excludes(self):
        locks = KeyedLock("test")
        inside = []
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("k"):
                entered.set()
                release.wait(5)
                inside.append("holder")

        def contender():
            with locks.hold("k"):
                inside.append("contender")

        t1 = threading.Thread(target=holder)
        t1.start()
        entered.wait(5)
        t2 = threading.Thread(target=contender)
        t2.start()
        t2.join(0.1)
        self.assertTrue(t2.is_alive())
        release.set()
        t1.join(5)
        t2.join(5)
        self.assertEqual(inside, ["holder", "contender"])
        self.assertEqual(locks.active_keys(), 0)

    def test_lock_released_on_error(self):
        locks = KeyedLock("test")
        with self.assertRaises(RuntimeError):
            with locks.hold("k"):
                raise RuntimeError("boom")
        self.assertEqual(locks.active_keys(), 0)


if __name__ == "__main__":
    unittest.main()
