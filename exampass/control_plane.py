"""
ExamPass Admin Control Plane

The single entry point for administrator operations. It holds no state of
its own; it checks the caller is the administrator before touching anything,
then runs each mutation under a single-writer lock so that admin changes,
which cascade across whitelist, bindings and profiles, never interleave.
"""

import threading
from typing import List

from .access import AccessGate
from .errors import ErrorCode, reject
from .issuer import PassIssuer
from .registry import IdentityRegistry
from .whitelist import CredentialWhitelist


class AdminControlPlane:
    """Administrator operations over whitelist, registry and issuer."""

    def __init__(
        self,
        access: AccessGate,
        whitelist: CredentialWhitelist,
        registry: IdentityRegistry,
        issuer: PassIssuer
    ):
        self.access = access
        self.whitelist = whitelist
        self.registry = registry
        self.issuer = issuer
        self._writer_lock = threading.RLock()

    def _require_admin(self, operation: str, caller: str) -> None:
        if not self.access.is_admin(caller):
            raise reject(operation, ErrorCode.NOT_ADMIN, caller)

    def add_eligible(self, caller: str, role, natural_key) -> str:
        """Whitelist a natural key for ``role``. Returns its fingerprint."""
        self._require_admin("add_eligible", caller)
        with self._writer_lock:
            return self.whitelist.add_eligible(caller, role, natural_key)

    def remove_eligible(self, caller: str, role, natural_key) -> str:
        """
        Drop a whitelisted natural key together with the registration bound to it.

        Fails NOT_BOUND when nobody has registered with the key.

        Returns:
            The identity whose registration was removed
        """
        self._require_admin("remove_eligible", caller)
        with self._writer_lock:
            return self.registry.revoke(caller, role, natural_key, remove_eligible=True)

    def revoke(self, caller: str, role, natural_key) -> str:
        """Unbind a registration but keep the key whitelisted."""
        self._require_admin("revoke", caller)
        with self._writer_lock:
            return self.registry.revoke(caller, role, natural_key)

    def mark_paid(self, caller: str, student: str) -> None:
        self._require_admin("mark_paid", caller)
        with self._writer_lock:
            self.issuer.mark_paid(caller, student)

    def query_paid(self, caller: str, student: str) -> bool:
        self._require_admin("query_paid", caller)
        return self.issuer.query_paid(caller, student)

    def list_eligible(self, caller: str, role) -> List[str]:
        self._require_admin("list_eligible", caller)
        return self.whitelist.list_eligible(caller, role)
