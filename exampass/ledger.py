"""
ExamPass Ledger Adapters

The ledger is the external collaborator that mints pass identifiers and
records who owns them. The registry only needs three operations:

    mint(owner) -> pass_id     fresh, strictly increasing from 0, never reused
    owner_of(pass_id) -> owner raises UNKNOWN_PASS if unminted
    total_minted() -> int

Implementations must make ``mint`` atomic: two concurrent mints never return
the same identifier.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from . import config
from .errors import ErrorCode, error_for


class Ledger(ABC):
    """Abstract interface for the pass ownership ledger."""

    @abstractmethod
    def mint(self, owner: str) -> int:
        """Mint a fresh pass owned by ``owner`` and return its identifier."""
        pass

    @abstractmethod
    def owner_of(self, pass_id: int) -> str:
        """Return the current owner of ``pass_id``."""
        pass

    @abstractmethod
    def total_minted(self) -> int:
        """Number of passes minted so far."""
        pass


def _check_owner(owner: str) -> None:
    if not isinstance(owner, str) or not owner:
        raise ValueError("owner must be a non-empty string")


def _unknown_pass(pass_id) -> Exception:
    return error_for(ErrorCode.UNKNOWN_PASS, f"pass {pass_id} was never minted", pass_id=pass_id)


class InMemoryLedger(Ledger):
    """
    In-memory ledger for development/testing.

    Not persistent across restarts.
    """

    def __init__(self):
        self._owners: List[str] = []
        self._lock = threading.Lock()

    def mint(self, owner: str) -> int:
        _check_owner(owner)
        with self._lock:
            self._owners.append(owner)
            return len(self._owners) - 1

    def owner_of(self, pass_id: int) -> str:
        with self._lock:
            if isinstance(pass_id, bool) or not isinstance(pass_id, int):
                raise _unknown_pass(pass_id)
            if pass_id < 0 or pass_id >= len(self._owners):
                raise _unknown_pass(pass_id)
            return self._owners[pass_id]

    def total_minted(self) -> int:
        with self._lock:
            return len(self._owners)


class SqliteLedger(Ledger):
    """
    SQLite-backed ledger.

    Features:
    - Durable across restarts (WAL journal)
    - Thread-local connections, released when their thread exits
    - Pass ids come from a single INTEGER PRIMARY KEY, so they are
      dense and strictly increasing

    Schema:
        CREATE TABLE passes (
            pass_id INTEGER PRIMARY KEY,
            owner TEXT NOT NULL,
            minted_at TEXT NOT NULL
        );
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._local = threading.local()
        self.init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a thread-local database connection.
        Connections are reused within the same thread.
        """
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path), timeout=30.0, check_same_thread=False)

    @contextmanager
    def _transaction(self):
        """
        Context manager for database transactions.
        Commits on success, rolls back on failure.
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def init_db(self) -> None:
        """Create the schema. Safe to call multiple times."""
        with self._transaction() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS passes (
                pass_id INTEGER PRIMARY KEY,
                owner TEXT NOT NULL,
                minted_at TEXT NOT NULL
            );""")
            conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_passes_owner
            ON passes(owner);""")

    def mint(self, owner: str) -> int:
        _check_owner(owner)
        minted_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        with self._transaction() as conn:
            # Take the write lock up front so every writer, in any process,
            # allocates against the latest committed row.
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.execute(
                "INSERT INTO passes(pass_id, owner, minted_at) "
                "SELECT COALESCE(MAX(pass_id), -1) + 1, ?, ? FROM passes",
                (owner, minted_at)
            )
            pass_id = cur.lastrowid
        return pass_id

    def owner_of(self, pass_id: int) -> str:
        if isinstance(pass_id, bool) or not isinstance(pass_id, int) or pass_id < 0:
            raise _unknown_pass(pass_id)
        conn = self._get_connection()
        row = conn.execute("SELECT owner FROM passes WHERE pass_id=?", (pass_id,)).fetchone()
        if row is None:
            raise _unknown_pass(pass_id)
        return row['owner']

    def total_minted(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) AS cnt FROM passes").fetchone()['cnt']

    def passes_of(self, owner: str) -> List[int]:
        """All pass ids owned by ``owner``, ascending."""
        conn = self._get_connection()
        cur = conn.execute("SELECT pass_id FROM passes WHERE owner=? ORDER BY pass_id", (owner,))
        return [row['pass_id'] for row in cur.fetchall()]

    def close(self) -> None:
        """Close the calling thread's connection."""
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            conn.close()
            self._local.conn = None


def get_ledger(backend: Optional[str] = None, db_path: Optional[str] = None) -> Ledger:
    """Build the ledger selected by configuration."""
    backend = backend or config.LEDGER_BACKEND
    if backend == "sqlite":
        return SqliteLedger(db_path or config.DB_PATH)
    if backend == "memory":
        return InMemoryLedger()
    raise ValueError(f"Unknown ledger backend: {backend}")
