"""
ExamPass Error Taxonomy

Every rejected operation raises an ExamPassError carrying a stable,
machine-readable code. A rejection never leaves partial state behind.
"""

from enum import Enum
from typing import Any, Dict, Optional

from .logging_config import audit_log


class ErrorCategory(str, Enum):
    """Broad class of a rejection."""
    AUTHORIZATION = "AUTHORIZATION"
    ELIGIBILITY = "ELIGIBILITY"
    STATE = "STATE"
    REFERENCE = "REFERENCE"


class ErrorCode(str, Enum):
    """Stable rejection codes."""
    # Authorization
    NOT_ADMIN = "NOT_ADMIN"
    CALLER_IS_ADMIN = "CALLER_IS_ADMIN"
    NOT_INVIGILATOR = "NOT_INVIGILATOR"

    # Eligibility
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    FINGERPRINT_ALREADY_BOUND = "FINGERPRINT_ALREADY_BOUND"
    ALREADY_ELIGIBLE = "ALREADY_ELIGIBLE"

    # Lifecycle state
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    ROLE_CONFLICT = "ROLE_CONFLICT"
    NOT_REGISTERED = "NOT_REGISTERED"
    ALREADY_PAID = "ALREADY_PAID"
    FEES_UNPAID = "FEES_UNPAID"
    ALREADY_ISSUED = "ALREADY_ISSUED"

    # Reference
    NOT_BOUND = "NOT_BOUND"
    UNKNOWN_PASS = "UNKNOWN_PASS"
    INVALID_PASS = "INVALID_PASS"


class ExamPassError(Exception):
    """Base class for all ExamPass rejections."""

    category: ErrorCategory = ErrorCategory.STATE

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message or code.value
        self.details = details or {}
        super().__init__(f"{code.value}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
        }
        if self.details:
            d["details"] = self.details
        return d


class AuthorizationError(ExamPassError):
    """Caller lacks, or has the wrong, privilege level."""
    category = ErrorCategory.AUTHORIZATION


class EligibilityError(ExamPassError):
    """Whitelist or binding precondition violated."""
    category = ErrorCategory.ELIGIBILITY


class StateError(ExamPassError):
    """Operation invalid for the profile's current lifecycle stage."""
    category = ErrorCategory.STATE


class LookupFailure(ExamPassError):
    """Operation targets an entity that does not exist or fails a cross-check."""
    category = ErrorCategory.REFERENCE


_CATEGORY_OF = {
    ErrorCode.NOT_ADMIN: AuthorizationError,
    ErrorCode.CALLER_IS_ADMIN: AuthorizationError,
    ErrorCode.NOT_INVIGILATOR: AuthorizationError,
    ErrorCode.NOT_ELIGIBLE: EligibilityError,
    ErrorCode.FINGERPRINT_ALREADY_BOUND: EligibilityError,
    ErrorCode.ALREADY_ELIGIBLE: EligibilityError,
    ErrorCode.ALREADY_REGISTERED: StateError,
    ErrorCode.ROLE_CONFLICT: StateError,
    ErrorCode.NOT_REGISTERED: StateError,
    ErrorCode.ALREADY_PAID: StateError,
    ErrorCode.FEES_UNPAID: StateError,
    ErrorCode.ALREADY_ISSUED: StateError,
    ErrorCode.NOT_BOUND: LookupFailure,
    ErrorCode.UNKNOWN_PASS: LookupFailure,
    ErrorCode.INVALID_PASS: LookupFailure,
}


def error_for(
    code: ErrorCode,
    message: Optional[str] = None,
    **details
) -> ExamPassError:
    """Build the ExamPassError subclass matching ``code``."""
    cls = _CATEGORY_OF[code]
    return cls(code, message, details or None)


def reject(
    operation: str,
    code: ErrorCode,
    caller: Optional[str] = None,
    message: Optional[str] = None,
    **details
) -> ExamPassError:
    """
    Record a rejected operation in the audit log and return the error to raise.

    Usage:
        raise reject("register", ErrorCode.NOT_ELIGIBLE, caller)
    """
    audit_log.operation_rejected(operation, code.value, caller=caller, **details)
    return error_for(code, message, **details)
