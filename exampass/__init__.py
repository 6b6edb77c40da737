"""
ExamPass Reference Implementation

Version: 1.0.0
License: Apache 2.0

An identity-gated issuance registry for examination passes.

An administrator whitelists participants (students, invigilators) by the
fingerprint of their natural key. Participants register against that
whitelist and bind themselves permanently to one identity. Once the
administrator records payment, a student may request exactly one pass,
which invigilators can later verify.

Guarantees:
- No credential fingerprint is bound to two identities at once
- No identity registers twice for a role
- No student is ever issued two passes
- Revocation removes profile and binding together

Usage:
    from exampass import build_system, Role

    system = build_system(admin="admin")
    system.admin.add_eligible("admin", Role.STUDENT, ("Ada", "M001"))

    system.registry.register("0xada", Role.STUDENT, ("Ada", "M001"))
    system.admin.mark_paid("admin", "0xada")
    pass_id = system.issuer.request_pass("0xada")

    system.admin.add_eligible("admin", Role.INVIGILATOR, ("Grace", "S042"))
    system.registry.register("0xgrace", Role.INVIGILATOR, ("Grace", "S042"))
    result = system.verifier.verify("0xgrace", pass_id)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Encoding and hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import (
    sha256_hash,
    credential_fingerprint,
    content_hash,
    is_fingerprint,
)

# Errors
from .errors import (
    ErrorCategory,
    ErrorCode,
    ExamPassError,
    AuthorizationError,
    EligibilityError,
    StateError,
    LookupFailure,
    error_for,
)

# Data model
from .models import (
    Role,
    NaturalKey,
    IdentityProfile,
    PassVerification,
)

# Collaborators
from .access import AccessGate, StaticAccessGate
from .ledger import Ledger, InMemoryLedger, SqliteLedger, get_ledger

# Events
from .events import (
    Event,
    StudentRegistered,
    InvigilatorRegistered,
    PassRequested,
    StudentMarkedPaid,
    CredentialAdded,
    CredentialRemoved,
    RegistrationRevoked,
    EventSink,
    InMemoryEventLog,
    LoggingEventSink,
    FanoutEventSink,
)

# Components
from .whitelist import CredentialWhitelist
from .registry import IdentityRegistry
from .issuer import PassIssuer
from .verification import VerificationService
from .control_plane import AdminControlPlane
from .system import ExamPassSystem, build_system

# Receipts
from .signing import SigningService, KeyPair, load_key_pair, save_key_pair
from .receipts import build_verification_receipt, verify_receipt_signature


__all__ = [
    "__version__",

    # Encoding and hashing
    "canonicalize",
    "canonicalize_str",
    "sha256_hash",
    "credential_fingerprint",
    "content_hash",
    "is_fingerprint",

    # Errors
    "ErrorCategory",
    "ErrorCode",
    "ExamPassError",
    "AuthorizationError",
    "EligibilityError",
    "StateError",
    "LookupFailure",
    "error_for",

    # Data model
    "Role",
    "NaturalKey",
    "IdentityProfile",
    "PassVerification",

    # Collaborators
    "AccessGate",
    "StaticAccessGate",
    "Ledger",
    "InMemoryLedger",
    "SqliteLedger",
    "get_ledger",

    # Events
    "Event",
    "StudentRegistered",
    "InvigilatorRegistered",
    "PassRequested",
    "StudentMarkedPaid",
    "CredentialAdded",
    "CredentialRemoved",
    "RegistrationRevoked",
    "EventSink",
    "InMemoryEventLog",
    "LoggingEventSink",
    "FanoutEventSink",

    # Components
    "CredentialWhitelist",
    "IdentityRegistry",
    "PassIssuer",
    "VerificationService",
    "AdminControlPlane",
    "ExamPassSystem",
    "build_system",

    # Receipts
    "SigningService",
    "KeyPair",
    "load_key_pair",
    "save_key_pair",
    "build_verification_receipt",
    "verify_receipt_signature",
]
