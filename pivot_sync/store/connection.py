"""Connection management for the local issue store.

Connections run in autocommit mode: every statement outside an explicit
`BEGIN` commits on its own, which is what gives per-issue upserts their
independent durability. Multi-statement work that must be atomic (the schema
migration) opens its own transaction.

Writers to the same store file are serialized with `store_lock`, which combines
a process-local lock keyed by the resolved store path with an advisory `fcntl`
lock on a sibling `.lock` file.
"""

import fcntl
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from pivot_sync.store.exceptions import DatabaseError, StoreLockError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

MEMORY_STORE = ":memory:"

_process_locks: dict[str, threading.Lock] = {}
_process_locks_guard = threading.Lock()


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory that returns rows as dictionaries keyed by column name."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """Enforce foreign keys and enable dict-like row access."""
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = dict_factory


def open_store(db_path: Path | str) -> sqlite3.Connection:
    """Open a configured autocommit connection to the store, creating parent directories as needed."""
    if str(db_path) != MEMORY_STORE:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(str(db_path), isolation_level=None)
        configure_connection(conn)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to open store at {db_path}: {exc}") from exc
    logger.debug("Opened local store", path=str(db_path))
    return conn


@contextmanager
def get_connection(db_path: Path | str) -> Iterator[sqlite3.Connection]:
    """Context manager yielding a store connection that is always closed on exit."""
    conn = open_store(db_path)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def store_lock(db_path: Path, timeout: float = 30.0) -> Iterator[None]:
    """Hold the single-writer lock for a store file.

    Raises:
        StoreLockError: If the lock cannot be acquired within the timeout.
    """
    key = str(db_path.resolve())
    with _process_locks_guard:
        process_lock = _process_locks.setdefault(key, threading.Lock())

    if not process_lock.acquire(timeout=timeout):
        raise StoreLockError(f"Could not acquire lock on {db_path} within {timeout}s")
    try:
        lock_path = db_path.with_name(db_path.name + ".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(lock_path, "w") as lock_file:
            deadline = time.monotonic() + timeout
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        raise StoreLockError(f"Could not acquire lock on {lock_path} within {timeout}s") from None
                    time.sleep(0.1)
            logger.debug("Acquired store lock", path=str(lock_path))
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
    finally:
        process_lock.release()
