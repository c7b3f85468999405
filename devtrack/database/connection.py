"""Database connection management."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from devtrack.errors import ConstraintError, DuplicateKeyError, StoreError, StoreIOError

from .schema import create_schema

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "devtrack.db"


class Database:
    """SQLite connection wrapper shared by every caller in the process.

    One connection, one lock. All access goes through transaction(), which
    holds the lock for the duration of the block, commits on success and
    rolls back on failure. The lock is always released, so a caller that
    fails mid-operation never leaves the store unusable for the others.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @classmethod
    def in_directory(cls, data_dir: Path) -> Self:
        return cls(data_dir / DATABASE_FILENAME)

    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is None:
                try:
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(self.db_path, check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    conn.execute("PRAGMA foreign_keys = ON")
                    create_schema(conn)
                except (OSError, sqlite3.Error) as e:
                    raise StoreIOError(f"Cannot open database {self.db_path}: {e}") from e
                self._conn = conn
            return self._conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self.connect()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block against the shared connection under the store lock."""
        with self._lock:
            conn = self.connect()
            try:
                yield conn
            except BaseException as e:
                self._rollback(conn)
                if isinstance(e, sqlite3.Error):
                    raise translate_error(e) from e
                raise
            else:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    self._rollback(conn)
                    raise translate_error(e) from e

    def _rollback(self, conn: sqlite3.Connection) -> None:
        try:
            conn.rollback()
        except sqlite3.Error as e:
            # Keep handing out the open connection rather than wedging the store
            logger.warning("Rollback failed, continuing with open connection: %s", e)

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def translate_error(error: sqlite3.Error) -> StoreError:
    """Map a sqlite3 error onto the store error taxonomy."""
    message = str(error)
    if isinstance(error, sqlite3.IntegrityError):
        upper = message.upper()
        if "UNIQUE" in upper or "PRIMARY KEY" in upper:
            return DuplicateKeyError(message)
        return ConstraintError(message)
    return StoreIOError(message)
