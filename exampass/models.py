"""
ExamPass Data Model

Roles, natural keys and the per-role identity profiles held by the registry.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .hashing import credential_fingerprint


class Role(str, Enum):
    """Participant roles that can be whitelisted and registered."""
    STUDENT = "student"
    INVIGILATOR = "invigilator"

    @property
    def id_label(self) -> str:
        """Name of the role's identifying field."""
        return "matric_number" if self is Role.STUDENT else "staff_id"

    def other(self) -> "Role":
        return Role.INVIGILATOR if self is Role.STUDENT else Role.STUDENT


@dataclass(frozen=True)
class NaturalKey:
    """
    The natural-key fields a fingerprint is derived from.

    ``id_field`` is the matriculation number for students and the staff id
    for invigilators.
    """
    name: str
    id_field: str

    def __post_init__(self):
        for label, value in (("name", self.name), ("id_field", self.id_field)):
            if not isinstance(value, str):
                raise TypeError(f"{label} must be a string")
            if not value.strip():
                raise ValueError(f"{label} must be non-empty")

    def fingerprint(self) -> str:
        return credential_fingerprint(self.name, self.id_field)

    def to_dict(self, role: Optional[Role] = None) -> Dict[str, str]:
        label = role.id_label if role else "id_field"
        return {"name": self.name, label: self.id_field}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IdentityProfile:
    """
    A registered participant.

    Student-only fields (``paid``, ``pass_requested``, ``pass_id``) stay at
    their defaults for invigilators.
    """
    identity: str
    role: Role
    key: NaturalKey
    sequential_id: int
    registered: bool = True
    paid: bool = False
    pass_requested: bool = False
    pass_id: Optional[int] = None
    registered_at: datetime = field(default_factory=_utcnow)

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def fingerprint(self) -> str:
        return self.key.fingerprint()

    def snapshot(self) -> "IdentityProfile":
        """Detached copy safe to hand to callers."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "identity": self.identity,
            "role": self.role.value,
            **self.key.to_dict(self.role),
            "registered": self.registered,
            "sequential_id": self.sequential_id,
            "registered_at": self.registered_at.isoformat().replace("+00:00", "Z"),
        }
        if self.role is Role.STUDENT:
            d["paid"] = self.paid
            d["pass_requested"] = self.pass_requested
            d["pass_id"] = self.pass_id
        return d


@dataclass(frozen=True)
class PassVerification:
    """What an invigilator learns about a pass holder."""
    name: str
    matric_number: str
    registered: bool
    paid: bool
    pass_id: int
    sequential_id: int

    def as_tuple(self):
        return (
            self.name,
            self.matric_number,
            self.registered,
            self.paid,
            self.pass_id,
            self.sequential_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "matric_number": self.matric_number,
            "registered": self.registered,
            "paid": self.paid,
            "pass_id": self.pass_id,
            "sequential_id": self.sequential_id,
        }


def as_role(role) -> Role:
    """Accept a Role or its string value."""
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        raise ValueError(f"Unknown role: {role!r}") from None


def as_natural_key(key) -> NaturalKey:
    """Accept a NaturalKey or a (name, id_field) pair."""
    if isinstance(key, NaturalKey):
        return key
    if isinstance(key, (tuple, list)) and len(key) == 2:
        return NaturalKey(key[0], key[1])
    raise TypeError("natural key must be a NaturalKey or a (name, id_field) pair")
