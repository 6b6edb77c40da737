"""
ExamPass Verification

Lets an invigilator resolve a pass id to its holder's credential and
eligibility. Read-only: nothing here mutates registry or ledger state.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ErrorCode, ExamPassError, reject
from .ledger import Ledger
from .models import PassVerification, Role
from .receipts import build_verification_receipt, sign_receipt
from .registry import IdentityRegistry
from .signing import SigningService


@dataclass(frozen=True)
class _Resolved:
    holder: str
    verification: PassVerification


class VerificationService:
    """
    Invigilator-facing pass verification.

    Usage:
        result = verifier.verify("0xinvigilator", 0)
        name, matric, registered, paid, pass_id, seq = result.as_tuple()
    """

    def __init__(
        self,
        registry: IdentityRegistry,
        ledger: Ledger,
        signer: Optional[SigningService] = None
    ):
        self.registry = registry
        self.ledger = ledger
        self.signer = signer

    def verify(self, caller: str, pass_id: int) -> PassVerification:
        """
        Verify a pass and return what the registry knows about its holder.

        Raises:
            AuthorizationError: NOT_INVIGILATOR
            LookupFailure: INVALID_PASS for unminted ids and for holders that
                are not registered, paid students
        """
        return self._resolve("verify", caller, pass_id).verification

    def attest(self, caller: str, pass_id: int) -> Dict[str, Any]:
        """
        Verify a pass and return a signed VERIFICATION_RECEIPT.

        Raises:
            RuntimeError: no signing service configured
        """
        if self.signer is None:
            raise RuntimeError("attest requires a signing service")
        resolved = self._resolve("attest", caller, pass_id)
        receipt = build_verification_receipt(resolved.verification, caller, resolved.holder)
        return sign_receipt(receipt, self.signer)

    def _resolve(self, operation: str, caller: str, pass_id) -> _Resolved:
        if not self.registry.is_registered(Role.INVIGILATOR, caller):
            raise reject(operation, ErrorCode.NOT_INVIGILATOR, caller)

        if isinstance(pass_id, bool) or not isinstance(pass_id, int):
            raise reject(operation, ErrorCode.INVALID_PASS, caller, "pass id must be an integer")
        if pass_id < 0 or pass_id >= self.ledger.total_minted():
            raise reject(operation, ErrorCode.INVALID_PASS, caller, "pass was never minted", pass_id=pass_id)

        try:
            holder = self.ledger.owner_of(pass_id)
        except ExamPassError as e:
            if e.code is not ErrorCode.UNKNOWN_PASS:
                raise
            raise reject(operation, ErrorCode.INVALID_PASS, caller, "pass was never minted", pass_id=pass_id) from e

        profile = self.registry.profile_of(Role.STUDENT, holder)
        if profile is None or not profile.registered or not profile.paid:
            raise reject(
                operation, ErrorCode.INVALID_PASS, caller,
                "holder is not a registered, paid student",
                pass_id=pass_id
            )

        return _Resolved(
            holder=holder,
            verification=PassVerification(
                name=profile.name,
                matric_number=profile.key.id_field,
                registered=profile.registered,
                paid=profile.paid,
                pass_id=pass_id,
                sequential_id=profile.sequential_id,
            ),
        )
