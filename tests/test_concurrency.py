"""
ExamPass Concurrency Tests

Races that must resolve to exactly one winner with no partial state.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from exampass import (
    ExamPassError,
    ErrorCode,
    InMemoryLedger,
    Role,
    build_system,
    credential_fingerprint,
)

ADMIN = "admin"
ADA = ("Ada", "M001")
WORKERS = 16


def race(fn, args_list):
    """Run ``fn`` once per argument tuple, released together by a barrier."""
    barrier = threading.Barrier(len(args_list))

    def run(args):
        barrier.wait()
        try:
            return ("ok", fn(*args))
        except ExamPassError as e:
            return ("err", e.code)

    with ThreadPoolExecutor(max_workers=len(args_list)) as pool:
        return list(pool.map(run, args_list))


class ConcurrencyTestCase(unittest.TestCase):

    def setUp(self):
        self.ledger = InMemoryLedger()
        self.system = build_system(admin=ADMIN, ledger=self.ledger)
        self.admin = self.system.admin
        self.registry = self.system.registry


class TestConcurrentRequestPass(ConcurrencyTestCase):

    def test_one_mint_per_student(self):
        self.admin.add_eligible(ADMIN, Role.STUDENT, ADA)
        self.registry.register("0xada", Role.STUDENT, ADA)
        self.admin.mark_paid(ADMIN, "0xada")

        results = race(self.system.issuer.request_pass, [("0xada",)] * WORKERS)

        ok = [v for status, v in results if status == "ok"]
        rejected = [v for status, v in results if status == "err"]
        self.assertEqual(ok, [0])
        self.assertEqual(rejected, [ErrorCode.ALREADY_ISSUED] * (WORKERS - 1))
        self.assertEqual(self.ledger.total_minted(), 1)

    def test_distinct_students_get_distinct_passes(self):
        identities = []
        for i in range(WORKERS):
            key = (f"Student {i}", f"M{i:03d}")
            identity = f"0xs{i}"
            self.admin.add_eligible(ADMIN, Role.STUDENT, key)
            self.registry.register(identity, Role.STUDENT, key)
            self.admin.mark_paid(ADMIN, identity)
            identities.append((identity,))

        results = race(self.system.issuer.request_pass, identities)

        pass_ids = sorted(v for status, v in results if status == "ok")
        self.assertEqual(pass_ids, list(range(WORKERS)))
        for (identity,) in identities:
            pass_id = self.system.issuer.pass_of(identity)
            self.assertEqual(self.ledger.owner_of(pass_id), identity)


class TestConcurrentRegistration(ConcurrencyTestCase):

    def test_one_identity_wins_a_fingerprint(self):
        self.admin.add_eligible(ADMIN, Role.STUDENT, ADA)

        callers = [(f"0xc{i}", Role.STUDENT, ADA) for i in range(WORKERS)]
        results = race(self.registry.register, callers)

        ok = [v for status, v in results if status == "ok"]
        rejected = [v for status, v in results if status == "err"]
        self.assertEqual(ok, [1])
        self.assertEqual(rejected, [ErrorCode.FINGERPRINT_ALREADY_BOUND] * (WORKERS - 1))
        self.assertEqual(self.registry.registered_count(Role.STUDENT), 1)
        self.assertEqual(self.registry.consistency_problems(), [])

    def test_one_registration_per_identity(self):
        keys = [(f"Student {i}", f"M{i:03d}") for i in range(WORKERS)]
        for key in keys:
            self.admin.add_eligible(ADMIN, Role.STUDENT, key)

        results = race(self.registry.register, [("0xsame", Role.STUDENT, k) for k in keys])

        ok = [v for status, v in results if status == "ok"]
        self.assertEqual(len(ok), 1)
        self.assertEqual(self.registry.registered_count(Role.STUDENT), 1)
        self.assertEqual(self.registry.consistency_problems(), [])

    def test_sequential_ids_unique_under_contention(self):
        keys = [(f"Student {i}", f"M{i:03d}") for i in range(WORKERS)]
        for key in keys:
            self.admin.add_eligible(ADMIN, Role.STUDENT, key)

        results = race(self.registry.register, [(f"0xs{i}", Role.STUDENT, k) for i, k in enumerate(keys)])

        self.assertEqual(sorted(v for _, v in results), list(range(1, WORKERS + 1)))

    def test_register_races_remove(self):
        """Registration and removal of one key never leave a half-built record."""
        for _ in range(20):
            system = build_system(admin=ADMIN, ledger=InMemoryLedger())
            system.admin.add_eligible(ADMIN, Role.STUDENT, ADA)
            system.registry.register("0xada", Role.STUDENT, ADA)

            race_args = [("remove",), ("register",)]

            def act(kind):
                if kind == "remove":
                    return system.admin.remove_eligible(ADMIN, Role.STUDENT, ADA)
                return system.registry.register("0xbo", Role.STUDENT, ADA)

            race(act, race_args)

            self.assertEqual(system.registry.consistency_problems(), [])
            fp = credential_fingerprint(*ADA)
            self.assertIsNone(system.registry.bound_identity(Role.STUDENT, fp))
            self.assertFalse(system.whitelist.is_eligible(Role.STUDENT, fp))

    def test_keyed_locks_released(self):
        self.admin.add_eligible(ADMIN, Role.STUDENT, ADA)
        race(self.registry.register, [(f"0xc{i}", Role.STUDENT, ADA) for i in range(WORKERS)])
        self.assertEqual(self.registry.fingerprint_locks.active_keys(), 0)
        self.assertEqual(self.registry.identity_locks.active_keys(), 0)


if __name__ == "__main__":
    unittest.main()
