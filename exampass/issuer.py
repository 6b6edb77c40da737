"""
ExamPass Pass Issuer

Issues exactly one examination pass per registered, paid student and owns
the paid flag.

The check of ``pass_requested``, the ledger mint and the flag write run under
the student's identity lock, so two concurrent requests from one identity
yield one mint and one ALREADY_ISSUED rejection. The flag is written only
after ``mint`` returns; a ledger failure propagates and leaves the profile
untouched.
"""

from typing import Optional

from .errors import ErrorCode, reject
from .events import PassRequested, StudentMarkedPaid, publish
from .ledger import Ledger
from .models import IdentityProfile, Role
from .registry import IdentityRegistry


class PassIssuer:
    """Pass issuance and payment state for students."""

    def __init__(self, registry: IdentityRegistry, ledger: Ledger):
        self.registry = registry
        self.ledger = ledger

    @property
    def access(self):
        return self.registry.access

    @property
    def events(self):
        return self.registry.events

    def _student(self, operation: str, identity: str, caller: str) -> IdentityProfile:
        # Live profile; caller holds the registry state lock.
        profile = self.registry._profiles[Role.STUDENT].get(identity)
        if profile is None or not profile.registered:
            raise reject(operation, ErrorCode.NOT_REGISTERED, caller, student=identity)
        return profile

    def request_pass(self, caller: str) -> int:
        """
        Mint the caller's examination pass.

        Returns:
            The pass id minted by the ledger

        Raises:
            StateError: NOT_REGISTERED, FEES_UNPAID, ALREADY_ISSUED
        """
        registry = self.registry
        with registry.identity_locks.hold(caller):
            with registry._state_lock:
                profile = self._student("request_pass", caller, caller)
                if not profile.paid:
                    raise reject("request_pass", ErrorCode.FEES_UNPAID, caller)
                if profile.pass_requested or caller in registry._issued:
                    raise reject("request_pass", ErrorCode.ALREADY_ISSUED, caller, pass_id=profile.pass_id)

            pass_id = self.ledger.mint(caller)

            with registry._state_lock:
                profile.pass_requested = True
                profile.pass_id = pass_id
                registry._issued[caller] = pass_id

            publish(self.events, PassRequested(identity=caller, pass_id=pass_id))
            return pass_id

    def mark_paid(self, caller: str, student: str) -> None:
        """
        Record that ``student`` has paid (admin-only, one-way).

        Raises:
            AuthorizationError: NOT_ADMIN
            StateError: NOT_REGISTERED, ALREADY_PAID
        """
        if not self.access.is_admin(caller):
            raise reject("mark_paid", ErrorCode.NOT_ADMIN, caller)

        registry = self.registry
        with registry.identity_locks.hold(student):
            with registry._state_lock:
                profile = self._student("mark_paid", student, caller)
                if profile.paid:
                    raise reject("mark_paid", ErrorCode.ALREADY_PAID, caller, student=student)
                profile.paid = True

            publish(self.events, StudentMarkedPaid(identity=student))

    def query_paid(self, caller: str, student: str) -> bool:
        """
        Read ``student``'s paid flag (admin-only).

        Re-derives the fingerprint from the stored natural key and requires it
        to still be bound to ``student``.

        Raises:
            AuthorizationError: NOT_ADMIN
            StateError: NOT_REGISTERED
            LookupFailure: NOT_BOUND
        """
        if not self.access.is_admin(caller):
            raise reject("query_paid", ErrorCode.NOT_ADMIN, caller)

        registry = self.registry
        with registry._state_lock:
            profile = self._student("query_paid", student, caller)
            fingerprint = profile.key.fingerprint()
            if registry._bindings[Role.STUDENT].get(fingerprint) != student:
                raise reject("query_paid", ErrorCode.NOT_BOUND, caller, student=student, fingerprint=fingerprint)
            return profile.paid

    def pass_of(self, student: str) -> Optional[int]:
        """The pass id issued to ``student``, if any."""
        return self.registry.issued_pass(student)
