"""
ExamPass Events

Audit-trail events emitted once per committed state transition, and the sinks
that receive them. Emission happens after the write it describes; a failing
sink never undoes that write.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Type

from .logging_config import audit_log


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Base class for all emitted events."""
    identity: str
    timestamp: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def payload(self) -> Dict[str, Any]:
        return {"identity": self.identity}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            **self.payload(),
        }


@dataclass(frozen=True)
class StudentRegistered(Event):
    name: str = ""
    matric_number: str = ""
    sequential_id: int = 0

    def payload(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "name": self.name,
            "matric_number": self.matric_number,
            "sequential_id": self.sequential_id,
        }


@dataclass(frozen=True)
class InvigilatorRegistered(Event):
    name: str = ""
    staff_id: str = ""
    sequential_id: int = 0

    def payload(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "name": self.name,
            "staff_id": self.staff_id,
            "sequential_id": self.sequential_id,
        }


@dataclass(frozen=True)
class PassRequested(Event):
    pass_id: int = -1

    def payload(self) -> Dict[str, Any]:
        return {"identity": self.identity, "pass_id": self.pass_id}


@dataclass(frozen=True)
class StudentMarkedPaid(Event):
    pass


@dataclass(frozen=True)
class CredentialAdded(Event):
    """``identity`` is the admin who added the credential."""
    role: str = ""
    fingerprint: str = ""

    def payload(self) -> Dict[str, Any]:
        return {"identity": self.identity, "role": self.role, "fingerprint": self.fingerprint}


@dataclass(frozen=True)
class CredentialRemoved(Event):
    """``identity`` is the admin who removed the credential."""
    role: str = ""
    fingerprint: str = ""

    def payload(self) -> Dict[str, Any]:
        return {"identity": self.identity, "role": self.role, "fingerprint": self.fingerprint}


@dataclass(frozen=True)
class RegistrationRevoked(Event):
    """``identity`` is the participant whose registration was revoked."""
    role: str = ""
    fingerprint: str = ""

    def payload(self) -> Dict[str, Any]:
        return {"identity": self.identity, "role": self.role, "fingerprint": self.fingerprint}


class EventSink(ABC):
    """Receives committed events."""

    @abstractmethod
    def emit(self, event: Event) -> None:
        pass


class InMemoryEventLog(EventSink):
    """
    In-memory event log for development/testing.

    Not persistent. Keeps at most ``max_events`` entries, dropping the oldest.
    """

    def __init__(self, max_events: int = 10000):
        self._events: List[Event] = []
        self._lock = threading.Lock()
        self._max_events = max_events

    def emit(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._max_events:
                self._events = self._events[-self._max_events:]

    def query(
        self,
        event_type: Optional[Type[Event]] = None,
        identity: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[Event]:
        with self._lock:
            events = self._events[:]

        if event_type:
            events = [e for e in events if isinstance(e, event_type)]
        if identity:
            events = [e for e in events if e.identity == identity]
        if start_time:
            events = [e for e in events if e.timestamp >= start_time]
        if end_time:
            events = [e for e in events if e.timestamp <= end_time]

        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class LoggingEventSink(EventSink):
    """Writes every event to the structured audit log."""

    def emit(self, event: Event) -> None:
        audit_log.event_committed(event.event_type, **event.payload())


class FanoutEventSink(EventSink):
    """
    Delivers each event to several sinks.

    A sink that raises is reported to the audit log and skipped; the others
    still receive the event.
    """

    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks = list(sinks)

    def emit(self, event: Event) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception as e:
                audit_log.sink_failure(type(sink).__name__, event.event_type, str(e))


def publish(sink: EventSink, event: Event) -> None:
    """Emit ``event`` after its transition committed. Sink errors are logged."""
    try:
        sink.emit(event)
    except Exception as e:
        audit_log.sink_failure(type(sink).__name__, event.event_type, str(e))
