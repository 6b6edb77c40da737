"""
Configuration module for ExamPass.

Centralizes configuration with environment variable support and validation.
"""

import os
from typing import Dict
from pathlib import Path

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("EXAMPASS_ENV", "dev")  # dev|stage|prod

# Identity recognised as administrator by the default access gate
DEFAULT_ADMIN_IDENTITY = "admin"
ADMIN_IDENTITY = os.getenv("EXAMPASS_ADMIN", DEFAULT_ADMIN_IDENTITY)

# Ledger backend: memory|sqlite
LEDGER_BACKEND = os.getenv("EXAMPASS_LEDGER", "memory")
DB_PATH = os.getenv("EXAMPASS_DB_PATH", "data/exampass.db")

# One identity may hold at most one role
EXCLUSIVE_ROLES = os.getenv("EXAMPASS_EXCLUSIVE_ROLES", "true").lower() in ("1", "true", "yes")

# Logging
LOG_LEVEL = os.getenv("EXAMPASS_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("EXAMPASS_LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("EXAMPASS_LOG_FILE", "")

# Verification receipt signing
SIGNING_KEY_PATH = os.getenv("EXAMPASS_SIGNING_KEY_PATH", "secrets/exampass_signing_key.json")


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Check the configured values that can be checked up front.
    In production the default administrator identity is refused.
    Returns dict of check name -> ok.
    """
    default_admin_in_prod = is_production() and ADMIN_IDENTITY == DEFAULT_ADMIN_IDENTITY
    checks = {
        "env": ENV in ("dev", "stage", "prod"),
        "ledger_backend": LEDGER_BACKEND in ("memory", "sqlite"),
        "log_level": LOG_LEVEL.upper() in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        "admin_identity": bool(ADMIN_IDENTITY.strip()) and not default_admin_in_prod,
    }
    # Receipt signing is optional; a configured key file must be readable.
    if Path(SIGNING_KEY_PATH).exists():
        checks["signing_key"] = os.access(SIGNING_KEY_PATH, os.R_OK)
    if LEDGER_BACKEND == "sqlite":
        checks["db_dir"] = Path(DB_PATH).parent.exists()
    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("EXAMPASS_DEBUG", "").lower() in ("1", "true", "yes")
