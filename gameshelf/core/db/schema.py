"""Database schema creation and migrations.

Migrations are applied in version order on every startup. Each one runs in
its own transaction together with its schema_version ledger row, so a
version is either fully applied and recorded or not at all.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable

from gameshelf.core.errors import StorageError

logger = logging.getLogger("gameshelf.database")

__all__ = ["SchemaMixin", "SCHEMA_VERSION"]

SCHEMA_VERSION = 3

_LEDGER_SQL = """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at INTEGER NOT NULL,
        description TEXT NOT NULL
    )
"""

_V1_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS games (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        external_id INTEGER NOT NULL UNIQUE,
        name TEXT NOT NULL,
        summary TEXT,
        storyline TEXT,
        release_date INTEGER,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS genres (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS companies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        external_id INTEGER NOT NULL UNIQUE,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS covers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        cover_id TEXT NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS artworks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        artwork_id TEXT NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS games_store (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        store_id TEXT NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS belongs_to (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        genre_id INTEGER NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE,
        FOREIGN KEY (genre_id) REFERENCES genres(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS developed_by (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        company_id INTEGER NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS published_by (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        game_id INTEGER NOT NULL,
        company_id INTEGER NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id) ON DELETE CASCADE ON UPDATE CASCADE,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE ON UPDATE CASCADE
    )
    """,
)

_V2_LINK_INDEXES = (
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_covers_game ON covers(game_id, cover_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_artworks_game ON artworks(game_id, artwork_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_games_store_game ON games_store(game_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_belongs_to_pair ON belongs_to(game_id, genre_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_developed_by_pair ON developed_by(game_id, company_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_published_by_pair ON published_by(game_id, company_id)",
    "CREATE INDEX IF NOT EXISTS idx_games_store_store ON games_store(store_id)",
)

_V3_NAME_INDEX = ("CREATE INDEX IF NOT EXISTS idx_games_name ON games(name COLLATE NOCASE)",)


class SchemaMixin:
    """Mixin providing schema creation and migration logic.

    Requires ConnectionBase attributes: conn, transaction().
    """

    def _migrations(self) -> list[tuple[int, str, Callable[[sqlite3.Connection], None]]]:
        """Ordered (version, description, apply) triples."""
        return [
            (1, "initial schema: games, relations, companies, genres", self._migrate_to_v1),
            (2, "unique relation links", self._migrate_to_v2),
            (3, "case-insensitive game name index", self._migrate_to_v3),
        ]

    def _ensure_schema(self) -> None:
        """Apply every migration not yet recorded in the ledger."""
        try:
            self.conn.execute(_LEDGER_SQL)
        except sqlite3.Error as e:
            raise StorageError(f"Unable to create schema ledger: {e}") from e

        applied = self.get_applied_versions()
        pending = [m for m in self._migrations() if m[0] not in applied]
        if not pending:
            return

        logger.info("Applying %d schema migration(s)", len(pending))
        for version, description, apply in pending:
            with self.transaction() as conn:
                # Another process may have applied it while we waited for the lock
                if version in self.get_applied_versions():
                    continue
                apply(conn)
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at, description) VALUES (?, ?, ?)",
                    (version, int(time.time()), description),
                )
            logger.info("Migrated to schema v%d: %s", version, description)

    def get_applied_versions(self) -> set[int]:
        """Get the set of schema versions recorded in the ledger."""
        cursor = self.conn.execute("SELECT version FROM schema_version")
        return {row[0] for row in cursor.fetchall()}

    def get_schema_version(self) -> int:
        """Get the highest applied schema version (0 for a fresh file)."""
        row = self.conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    @staticmethod
    def _migrate_to_v1(conn: sqlite3.Connection) -> None:
        for statement in _V1_TABLES:
            conn.execute(statement)

    @staticmethod
    def _migrate_to_v2(conn: sqlite3.Connection) -> None:
        # Collapse duplicates left by older link writers before adding constraints
        for table, columns in (
            ("covers", "game_id, cover_id"),
            ("artworks", "game_id, artwork_id"),
            ("belongs_to", "game_id, genre_id"),
            ("developed_by", "game_id, company_id"),
            ("published_by", "game_id, company_id"),
        ):
            conn.execute(f"DELETE FROM {table} WHERE id NOT IN (SELECT MIN(id) FROM {table} GROUP BY {columns})")
        conn.execute("DELETE FROM games_store WHERE id NOT IN (SELECT MAX(id) FROM games_store GROUP BY game_id)")

        for statement in _V2_LINK_INDEXES:
            conn.execute(statement)

    @staticmethod
    def _migrate_to_v3(conn: sqlite3.Connection) -> None:
        for statement in _V3_NAME_INDEX:
            conn.execute(statement)
