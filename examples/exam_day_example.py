#!/usr/bin/env python3
"""
ExamPass Example - Complete Exam-Day Flow

Whitelists a cohort, registers students and an invigilator, records
payment, issues passes and verifies one at the exam hall door with a
signed receipt.

Run with: python examples/exam_day_example.py
"""

import json

from exampass import (
    ExamPassError,
    Role,
    SigningService,
    InMemoryLedger,
    build_system,
    verify_receipt_signature,
)
from exampass.logging_config import configure_logging, set_request_id

ADMIN = "registrar"

COHORT = [
    ("0xada", ("Ada Obi", "CSC/2021/001")),
    ("0xbo", ("Bo Chen", "CSC/2021/002")),
    ("0xcy", ("Cy Mensah", "CSC/2021/003")),
]
INVIGILATOR = ("0xgrace", ("Grace Hopper", "STAFF-042"))


def print_section(title: str):
    print()
    print("=" * 60)
    print(title)
    print("=" * 60)


def main():
    configure_logging(level="WARNING", json_format=False)

    signer = SigningService()
    signer.generate_key_pair("kid:exampass-demo")
    system = build_system(admin=ADMIN, ledger=InMemoryLedger(), signer=signer)

    print_section("1. Whitelist cohort")
    for _, key in COHORT:
        fp = system.admin.add_eligible(ADMIN, Role.STUDENT, key)
        print(f"  {key[0]:<12} {fp}")
    system.admin.add_eligible(ADMIN, Role.INVIGILATOR, INVIGILATOR[1])

    print_section("2. Registration")
    for identity, key in COHORT:
        set_request_id()
        seq = system.registry.register(identity, Role.STUDENT, key)
        print(f"  {identity} registered as student #{seq}")
    system.registry.register(INVIGILATOR[0], Role.INVIGILATOR, INVIGILATOR[1])

    try:
        system.registry.register("0xmallory", Role.STUDENT, COHORT[0][1])
    except ExamPassError as e:
        print(f"  0xmallory rejected: {e.code.value}")

    print_section("3. Fees and passes")
    for identity, _ in COHORT[:2]:
        system.admin.mark_paid(ADMIN, identity)

    for identity, _ in COHORT:
        try:
            pass_id = system.issuer.request_pass(identity)
            print(f"  {identity} -> pass {pass_id}")
        except ExamPassError as e:
            print(f"  {identity} -> {e.code.value}")

    print_section("4. Verification at the door")
    receipt = system.verifier.attest(INVIGILATOR[0], 0)
    print(json.dumps(receipt["result"], indent=2))
    print(f"  receipt signature valid: {verify_receipt_signature(receipt, signer.trust_store())}")

    try:
        system.verifier.verify(INVIGILATOR[0], 7)
    except ExamPassError as e:
        print(f"  pass 7: {e.code.value}")

    print_section("5. Audit trail")
    for event in system.event_log.query():
        print(f"  {event.event_type:<22} {event.identity}")


if __name__ == "__main__":
    main()
