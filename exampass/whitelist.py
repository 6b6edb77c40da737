"""
ExamPass Credential Whitelist

Admin-managed set of eligible credential fingerprints, one ordered set per
role. Registration consumes an entry by binding it; it does not remove it.
"""

import threading
from typing import Dict, List, Optional

from .access import AccessGate
from .errors import ErrorCode, reject
from .events import CredentialAdded, EventSink, InMemoryEventLog, publish
from .hashing import is_fingerprint
from .models import Role, as_natural_key, as_role


class CredentialWhitelist:
    """
    Ordered membership sets of fingerprints per role.

    ``add_eligible`` and ``list_eligible`` are admin-only. Removal is owned by
    the identity registry, which must drop the dependent binding and profile
    in the same step.
    """

    def __init__(self, access: AccessGate, events: Optional[EventSink] = None):
        self.access = access
        self.events = events if events is not None else InMemoryEventLog()
        self._eligible: Dict[Role, Dict[str, None]] = {role: {} for role in Role}
        self._lock = threading.RLock()

    def add_eligible(self, caller: str, role, natural_key) -> str:
        """
        Authorize a natural key to register for ``role``.

        Returns:
            The fingerprint that was added
        """
        if not self.access.is_admin(caller):
            raise reject("add_eligible", ErrorCode.NOT_ADMIN, caller)
        role = as_role(role)
        fingerprint = as_natural_key(natural_key).fingerprint()

        with self._lock:
            if fingerprint in self._eligible[role]:
                raise reject(
                    "add_eligible", ErrorCode.ALREADY_ELIGIBLE, caller,
                    role=role.value, fingerprint=fingerprint
                )
            self._eligible[role][fingerprint] = None

        publish(self.events, CredentialAdded(identity=caller, role=role.value, fingerprint=fingerprint))
        return fingerprint

    def is_eligible(self, role, fingerprint: str) -> bool:
        role = as_role(role)
        if not is_fingerprint(fingerprint):
            return False
        with self._lock:
            return fingerprint in self._eligible[role]

    def list_eligible(self, caller: str, role) -> List[str]:
        """Eligible fingerprints for ``role`` in insertion order."""
        if not self.access.is_admin(caller):
            raise reject("list_eligible", ErrorCode.NOT_ADMIN, caller)
        role = as_role(role)
        with self._lock:
            return list(self._eligible[role])

    def _discard(self, role: Role, fingerprint: str) -> bool:
        with self._lock:
            if fingerprint not in self._eligible[role]:
                return False
            del self._eligible[role][fingerprint]
            return True

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._eligible.values())
