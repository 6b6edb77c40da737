"""
ExamPass Access Gate

Answers the single question the registry asks about privilege:
is this caller the administrator?
"""

from abc import ABC, abstractmethod


class AccessGate(ABC):
    """Abstract interface for administrator recognition."""

    @abstractmethod
    def is_admin(self, caller: str) -> bool:
        pass


class StaticAccessGate(AccessGate):
    """Recognises one fixed administrator identity."""

    def __init__(self, admin: str):
        if not isinstance(admin, str) or not admin.strip():
            raise ValueError("admin identity must be a non-empty string")
        self.admin = admin

    def is_admin(self, caller: str) -> bool:
        return caller == self.admin
