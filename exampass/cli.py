#!/usr/bin/env python3
"""
ExamPass Command Line Interface

Usage:
    exampass fingerprint --role student --name <name> --id <matric number>
    exampass roster --file <roster.json>
    exampass keygen --output <file> [--key-id <kid>]
    exampass check-receipt --receipt <file> --key <file>
    exampass check-config
"""

import argparse
import json
import sys

from . import config
from .logging_config import configure_logging


def load_json(path: str):
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def cmd_fingerprint(args) -> int:
    """Print the credential fingerprint of one natural key."""
    from .models import NaturalKey, as_role

    role = as_role(args.role)
    print(json.dumps({
        "role": role.value,
        "fingerprint": NaturalKey(args.name, args.id).fingerprint(),
    }))
    return 0


def cmd_roster(args) -> int:
    """
    Fingerprint every entry of a roster file.

    The roster is a JSON object mapping role to a list of
    {"name": ..., "id": ...} entries.
    """
    from .models import NaturalKey, as_role

    roster = load_json(args.file)
    if not isinstance(roster, dict):
        print("roster must be a JSON object keyed by role", file=sys.stderr)
        return 1

    out = {}
    for role_name, entries in roster.items():
        role = as_role(role_name)
        out[role.value] = [
            {"name": e["name"], "fingerprint": NaturalKey(e["name"], e["id"]).fingerprint()}
            for e in entries
        ]
    print(json.dumps(out, indent=2))
    return 0


def cmd_keygen(args) -> int:
    """Generate an Ed25519 key file for signing verification receipts."""
    from .signing import SigningService, save_key_pair

    key_pair = SigningService().generate_key_pair(args.key_id, validity_days=args.days)
    save_key_pair(key_pair, args.output)
    print(json.dumps(key_pair.to_trust_store_entry(), indent=2))
    print(f"Key saved to: {args.output}", file=sys.stderr)
    return 0


def cmd_check_receipt(args) -> int:
    """Check the signature on a verification receipt."""
    from .receipts import verify_receipt_signature
    from .signing import load_key_pair

    receipt = load_json(args.receipt)
    key_pair = load_key_pair(args.key)
    trust_store = {key_pair.key_id: key_pair.to_trust_store_entry()}

    if verify_receipt_signature(receipt, trust_store):
        print(f"✓ VALID receipt for pass {receipt.get('pass_id')}")
        return 0
    print("✗ INVALID receipt")
    return 1


def cmd_check_config(args) -> int:
    """Print the configuration checks; fail if any of them fails."""
    checks = config.validate_config()
    print(json.dumps({"env": config.ENV, "checks": checks}, indent=2))
    return 0 if all(checks.values()) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="exampass", description="ExamPass utilities")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("fingerprint", help="Fingerprint a natural key")
    p.add_argument("--role", default="student", choices=["student", "invigilator"])
    p.add_argument("--name", required=True)
    p.add_argument("--id", required=True, help="Matric number or staff id")
    p.set_defaults(func=cmd_fingerprint)

    p = sub.add_parser("roster", help="Fingerprint a roster file")
    p.add_argument("--file", required=True)
    p.set_defaults(func=cmd_roster)

    p = sub.add_parser("keygen", help="Generate a receipt signing key")
    p.add_argument("--output", default=config.SIGNING_KEY_PATH)
    p.add_argument("--key-id", default="kid:exampass-receipts-001")
    p.add_argument("--days", type=int, default=365)
    p.set_defaults(func=cmd_keygen)

    p = sub.add_parser("check-receipt", help="Verify a signed verification receipt")
    p.add_argument("--receipt", required=True)
    p.add_argument("--key", default=config.SIGNING_KEY_PATH)
    p.set_defaults(func=cmd_check_receipt)

    p = sub.add_parser("check-config", help="Validate environment configuration")
    p.set_defaults(func=cmd_check_config)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = "DEBUG" if config.is_debug() else args.log_level
    configure_logging(level=level, json_format=config.LOG_JSON, log_file=config.LOG_FILE or None)
    try:
        return args.func(args)
    except (OSError, ValueError, KeyError, TypeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
