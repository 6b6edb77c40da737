"""
ExamPass composition root.

Wires one whitelist, registry, issuer, verifier and control plane around a
shared ledger, access gate and event sink.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import config
from .access import AccessGate, StaticAccessGate
from .control_plane import AdminControlPlane
from .events import EventSink, FanoutEventSink, InMemoryEventLog, LoggingEventSink
from .issuer import PassIssuer
from .ledger import Ledger, get_ledger
from .registry import IdentityRegistry
from .signing import SigningService, load_key_pair
from .verification import VerificationService
from .whitelist import CredentialWhitelist


@dataclass
class ExamPassSystem:
    """All components of one registry instance."""
    access: AccessGate
    ledger: Ledger
    events: EventSink
    event_log: InMemoryEventLog
    whitelist: CredentialWhitelist
    registry: IdentityRegistry
    issuer: PassIssuer
    verifier: VerificationService
    admin: AdminControlPlane


def signer_from_config() -> Optional[SigningService]:
    """Load the configured receipt signing key, if one has been generated."""
    path = Path(config.SIGNING_KEY_PATH)
    if not path.exists():
        return None
    signer = SigningService()
    signer.add_key_pair(load_key_pair(path))
    return signer


def build_system(
    admin: Optional[str] = None,
    access: Optional[AccessGate] = None,
    ledger: Optional[Ledger] = None,
    events: Optional[EventSink] = None,
    signer: Optional[SigningService] = None,
    exclusive_roles: Optional[bool] = None
) -> ExamPassSystem:
    """
    Build a system, taking unset collaborators from configuration.

    Events go to an in-memory log and the structured audit log; a custom
    ``events`` sink is added alongside them. Without a ``signer`` the key
    at ``SIGNING_KEY_PATH`` is used when present.

    Raises:
        ValueError: in production, when the gate would admit the default
            administrator identity
    """
    if access is None:
        admin = admin or config.ADMIN_IDENTITY
        if config.is_production() and admin == config.DEFAULT_ADMIN_IDENTITY:
            raise ValueError("set EXAMPASS_ADMIN; the default administrator is not allowed in production")
        access = StaticAccessGate(admin)
    ledger = ledger or get_ledger()
    if signer is None:
        signer = signer_from_config()
    if exclusive_roles is None:
        exclusive_roles = config.EXCLUSIVE_ROLES

    event_log = InMemoryEventLog()
    sinks = [event_log, LoggingEventSink()]
    if events is not None:
        sinks.append(events)
    fanout = FanoutEventSink(sinks)

    whitelist = CredentialWhitelist(access, fanout)
    registry = IdentityRegistry(whitelist, access, fanout, exclusive_roles=exclusive_roles)
    issuer = PassIssuer(registry, ledger)
    verifier = VerificationService(registry, ledger, signer)
    control = AdminControlPlane(access, whitelist, registry, issuer)

    return ExamPassSystem(
        access=access,
        ledger=ledger,
        events=fanout,
        event_log=event_log,
        whitelist=whitelist,
        registry=registry,
        issuer=issuer,
        verifier=verifier,
        admin=control,
    )
