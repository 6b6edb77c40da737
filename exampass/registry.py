"""
ExamPass Identity Registry

Maps a caller identity to at most one profile per role and binds each
whitelisted fingerprint to the single identity that registered with it.

Invariants:
- A fingerprint is bound to at most one identity at a time.
- An identity holds at most one profile per role (and, with exclusive
  roles, at most one profile overall).
- Sequential ids are allocated per role, start at 1 and are never reused,
  including after revocation.
- Profile and binding are created together and deleted together.

Locking:
    fingerprint lock -> identity lock -> state lock -> whitelist lock

Every mutating path acquires locks in that order, and all checks run before
the first write, so a rejected call leaves no trace.
"""

import threading
from typing import Dict, List, Optional

from .access import AccessGate
from .errors import ErrorCode, reject
from .events import (
    EventSink,
    InMemoryEventLog,
    InvigilatorRegistered,
    RegistrationRevoked,
    CredentialRemoved,
    StudentRegistered,
    publish,
)
from .locks import KeyedLock
from .logging_config import audit_log
from .models import IdentityProfile, Role, as_natural_key, as_role
from .whitelist import CredentialWhitelist


class IdentityRegistry:
    """
    Registration and binding state for every role.

    Usage:
        registry = IdentityRegistry(whitelist, access)
        seq = registry.register("0xabc", Role.STUDENT, ("Ada", "M001"))
    """

    def __init__(
        self,
        whitelist: CredentialWhitelist,
        access: AccessGate,
        events: Optional[EventSink] = None,
        exclusive_roles: bool = True
    ):
        self.whitelist = whitelist
        self.access = access
        self.events = events if events is not None else InMemoryEventLog()
        self.exclusive_roles = exclusive_roles

        self._profiles: Dict[Role, Dict[str, IdentityProfile]] = {role: {} for role in Role}
        self._bindings: Dict[Role, Dict[str, str]] = {role: {} for role in Role}
        self._counters: Dict[Role, int] = {role: 0 for role in Role}
        # identity -> pass id; outlives revocation so a holder never gets two passes
        self._issued: Dict[str, int] = {}

        self._state_lock = threading.RLock()
        self.fingerprint_locks = KeyedLock("fingerprint")
        self.identity_locks = KeyedLock("identity")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, caller: str, role, natural_key) -> int:
        """
        Register ``caller`` for ``role`` with a whitelisted natural key.

        Returns:
            The sequential id allocated to the new profile

        Raises:
            AuthorizationError: CALLER_IS_ADMIN
            StateError: ALREADY_REGISTERED, ROLE_CONFLICT
            EligibilityError: NOT_ELIGIBLE, FINGERPRINT_ALREADY_BOUND
        """
        if not isinstance(caller, str) or not caller:
            raise ValueError("caller must be a non-empty string")
        role = as_role(role)
        key = as_natural_key(natural_key)

        if self.access.is_admin(caller):
            raise reject("register", ErrorCode.CALLER_IS_ADMIN, caller)

        fingerprint = key.fingerprint()
        with self.fingerprint_locks.hold((role, fingerprint)):
            with self.identity_locks.hold(caller):
                with self._state_lock:
                    self._check_can_register(caller, role, fingerprint)

                    self._counters[role] += 1
                    issued = self._issued.get(caller)
                    profile = IdentityProfile(
                        identity=caller,
                        role=role,
                        key=key,
                        sequential_id=self._counters[role],
                        pass_requested=issued is not None and role is Role.STUDENT,
                        pass_id=issued if role is Role.STUDENT else None,
                    )
                    self._profiles[role][caller] = profile
                    self._bindings[role][fingerprint] = caller

                publish(self.events, self._registered_event(profile))
                return profile.sequential_id

    def _check_can_register(self, caller: str, role: Role, fingerprint: str) -> None:
        if caller in self._profiles[role]:
            raise reject("register", ErrorCode.ALREADY_REGISTERED, caller, role=role.value)
        if self.exclusive_roles and caller in self._profiles[role.other()]:
            raise reject(
                "register", ErrorCode.ROLE_CONFLICT, caller,
                "identity already registered under another role",
                role=role.value
            )
        if not self.whitelist.is_eligible(role, fingerprint):
            raise reject("register", ErrorCode.NOT_ELIGIBLE, caller, role=role.value)
        if fingerprint in self._bindings[role]:
            audit_log.security_event(
                "credential_claim_conflict", caller=caller, role=role.value,
                fingerprint=fingerprint, bound_to=self._bindings[role][fingerprint]
            )
            raise reject(
                "register", ErrorCode.FINGERPRINT_ALREADY_BOUND, caller,
                role=role.value, fingerprint=fingerprint
            )

    @staticmethod
    def _registered_event(profile: IdentityProfile):
        if profile.role is Role.STUDENT:
            return StudentRegistered(
                identity=profile.identity,
                name=profile.name,
                matric_number=profile.key.id_field,
                sequential_id=profile.sequential_id,
            )
        return InvigilatorRegistered(
            identity=profile.identity,
            name=profile.name,
            staff_id=profile.key.id_field,
            sequential_id=profile.sequential_id,
        )

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def revoke(self, caller: str, role, natural_key, remove_eligible: bool = False) -> str:
        """
        Delete the profile and binding attached to a natural key (admin-only).

        With ``remove_eligible`` the fingerprint also leaves the whitelist in
        the same step; otherwise it stays eligible for a new registration.

        Returns:
            The identity that was unbound
        """
        operation = "remove_eligible" if remove_eligible else "revoke"
        if not self.access.is_admin(caller):
            raise reject(operation, ErrorCode.NOT_ADMIN, caller)
        role = as_role(role)
        fingerprint = as_natural_key(natural_key).fingerprint()

        with self.fingerprint_locks.hold((role, fingerprint)):
            with self._state_lock:
                identity = self._bindings[role].get(fingerprint)
            if identity is None:
                raise reject(operation, ErrorCode.NOT_BOUND, caller, role=role.value, fingerprint=fingerprint)

            with self.identity_locks.hold(identity):
                with self._state_lock:
                    self._unbind(role, fingerprint, identity)
                    if remove_eligible:
                        self.whitelist._discard(role, fingerprint)

            publish(self.events, RegistrationRevoked(identity=identity, role=role.value, fingerprint=fingerprint))
            if remove_eligible:
                publish(self.events, CredentialRemoved(identity=caller, role=role.value, fingerprint=fingerprint))
            return identity

    def _unbind(self, role: Role, fingerprint: str, identity: str) -> None:
        """Remove profile and binding together. Caller holds the state lock."""
        profiles = self._profiles[role]
        bindings = self._bindings[role]
        if bindings.get(fingerprint) != identity:
            raise RuntimeError(f"binding for {fingerprint} moved while its lock was held")
        bindings.pop(fingerprint)
        profiles.pop(identity, None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def profile_of(self, role, identity: str) -> Optional[IdentityProfile]:
        """A detached copy of ``identity``'s profile for ``role``, if any."""
        role = as_role(role)
        with self._state_lock:
            profile = self._profiles[role].get(identity)
            return profile.snapshot() if profile else None

    def is_registered(self, role, identity: str) -> bool:
        role = as_role(role)
        with self._state_lock:
            profile = self._profiles[role].get(identity)
            return profile is not None and profile.registered

    def bound_identity(self, role, fingerprint: str) -> Optional[str]:
        role = as_role(role)
        with self._state_lock:
            return self._bindings[role].get(fingerprint)

    def registered_count(self, role) -> int:
        role = as_role(role)
        with self._state_lock:
            return len(self._profiles[role])

    def issued_pass(self, identity: str) -> Optional[int]:
        with self._state_lock:
            return self._issued.get(identity)

    def consistency_problems(self) -> List[str]:
        """
        Describe every orphaned binding or profile.

        Returns:
            Empty list when bindings and profiles form a bijection
        """
        problems = []
        with self._state_lock:
            for role in Role:
                profiles = self._profiles[role]
                bindings = self._bindings[role]
                bound = set(bindings.values())
                for fingerprint, identity in bindings.items():
                    profile = profiles.get(identity)
                    if profile is None:
                        problems.append(f"{role.value}: binding {fingerprint} has no profile")
                    elif profile.fingerprint != fingerprint:
                        problems.append(f"{role.value}: {identity} bound to a foreign fingerprint")
                for identity in profiles:
                    if identity not in bound:
                        problems.append(f"{role.value}: profile {identity} has no binding")
        return problems
