"""
Keyed locks.

A lock table handing out one mutex per key (fingerprint, identity) so that
operations on unrelated keys do not serialize on each other. Entries are
dropped once no thread holds or waits on them.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class KeyedLock:
    """Per-key mutual exclusion."""

    def __init__(self, name: str = "keyed"):
        self.name = name
        self._entries: Dict[Hashable, _Entry] = {}
        self._guard = threading.Lock()

    def _acquire_entry(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _release_entry(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._acquire_entry(key)
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            self._release_entry(key, entry)

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""
        with self._guard:
            return len(self._entries)
