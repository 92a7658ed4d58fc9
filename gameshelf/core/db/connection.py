"""Database connection management.

Handles SQLite connection setup, per-connection PRAGMA configuration,
explicit transactions, and context manager protocol.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from gameshelf.core.errors import ConflictViolationError, StorageError

logger = logging.getLogger("gameshelf.database")

__all__ = ["ConnectionBase"]

_BUSY_TIMEOUT_MS = 5000


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


class ConnectionBase:
    """Base class providing SQLite connection setup and lifecycle.

    Every connection gets foreign keys enabled (SQLite keeps that setting
    per connection), WAL mode and a busy timeout so readers can run while
    a sync writes. Transactions are explicit: the connection runs in
    autocommit mode and writes go through transaction().

    Connections are bound to the thread that opened them; background
    workers open their own Database on the same path.

    Calls _ensure_schema() which is provided by SchemaMixin via
    multiple inheritance.
    """

    conn: sqlite3.Connection
    db_path: Path

    def __init__(self, db_path: Path) -> None:
        """Open the database and apply pending migrations.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StorageError: If the file cannot be opened or configured.
        """
        self.db_path = Path(db_path)

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.execute(f"PRAGMA busy_timeout = {_BUSY_TIMEOUT_MS}")
            self.conn.create_function("casefold", 1, _casefold, deterministic=True)
        except (OSError, sqlite3.Error) as e:
            if getattr(self, "conn", None) is not None:
                self.conn.close()
            raise StorageError(f"Unable to open database {self.db_path}: {e}") from e

        try:
            self._ensure_schema()
        except BaseException:
            self.conn.close()
            raise

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside one write transaction.

        Commits when the block finishes, rolls back on any exception.
        sqlite3 errors are re-raised as ConflictViolationError (constraint
        failures) or StorageError; anything else propagates unchanged.

        Yields:
            The underlying connection.
        """
        if self.conn.in_transaction:
            raise StorageError("Nested transactions are not supported")

        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StorageError(f"Unable to start transaction: {e}") from e

        try:
            yield self.conn
        except BaseException as exc:
            self._rollback()
            if isinstance(exc, sqlite3.IntegrityError):
                raise ConflictViolationError(f"Constraint violated: {exc}") from exc
            if isinstance(exc, sqlite3.Error):
                raise StorageError(f"Database error: {exc}") from exc
            raise

        try:
            self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            raise StorageError(f"Unable to commit transaction: {e}") from e

    def _rollback(self) -> None:
        if not self.conn.in_transaction:
            return
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error("Rollback failed: %s", e)

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> ConnectionBase:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
