"""Game write operations.

upsert_complete_game() writes a game and all of its relations in one
transaction. Relation rows are replaced, not accumulated, so a re-sync of
the same record leaves exactly one link per relation pair.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Iterable

from gameshelf.core.db.models import CompanyRecord, GameRecord, UpsertResult

logger = logging.getLogger("gameshelf.database")

__all__ = ["GameWriteMixin"]


class GameWriteMixin:
    """Mixin providing the atomic game upsert and explicit deletion.

    Requires ConnectionBase attributes: conn, transaction().
    """

    def upsert_complete_game(self, record: GameRecord) -> UpsertResult:
        """Insert or update a game and all of its relations atomically.

        Within one transaction: upsert the games row keyed by external_id,
        replace cover and artwork links, link genres (created by name when
        new), link developers and publishers (companies created or renamed
        by external_id), and upsert the store link when the record has one.
        On any failure the whole transaction rolls back and a game that
        already existed keeps its previous state.

        Args:
            record: Normalized metadata for one game.

        Returns:
            The local game ID and whether the game was newly inserted.

        Raises:
            ConflictViolationError: On an unexpected constraint failure.
            StorageError: On any other database failure.
        """
        now = int(time.time())

        with self.transaction() as conn:
            existing = conn.execute("SELECT id FROM games WHERE external_id = ?", (record.external_id,)).fetchone()

            conn.execute(
                """
                INSERT INTO games (external_id, name, summary, storyline, release_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(external_id) DO UPDATE SET
                    name = excluded.name,
                    summary = excluded.summary,
                    storyline = excluded.storyline,
                    release_date = excluded.release_date,
                    updated_at = excluded.updated_at
                """,
                (
                    record.external_id,
                    record.name,
                    record.summary,
                    record.storyline,
                    record.release_date,
                    now,
                    now,
                ),
            )
            game_id = conn.execute("SELECT id FROM games WHERE external_id = ?", (record.external_id,)).fetchone()[0]

            self._replace_cover(conn, game_id, record.cover)
            self._replace_artworks(conn, game_id, record.artworks)
            self._replace_genres(conn, game_id, record.genres)
            self._replace_company_links(conn, "developed_by", game_id, record.developers)
            self._replace_company_links(conn, "published_by", game_id, record.publishers)
            if record.store_id:
                self._upsert_store_link(conn, game_id, record.store_id)

        inserted = existing is None
        logger.debug(
            "%s game %d (external %d): %s", "Inserted" if inserted else "Updated", game_id, record.external_id, record.name
        )
        return UpsertResult(game_id=game_id, inserted=inserted)

    def delete_game(self, game_id: int) -> bool:
        """Delete a game; its relation rows go with it by cascade.

        Args:
            game_id: Local game ID.

        Returns:
            True if a game was deleted.
        """
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
        return cursor.rowcount > 0

    # -- Relation writers (run inside the caller's transaction) --

    @staticmethod
    def _replace_cover(conn: sqlite3.Connection, game_id: int, cover: str | None) -> None:
        conn.execute("DELETE FROM covers WHERE game_id = ?", (game_id,))
        if cover:
            conn.execute("INSERT INTO covers (game_id, cover_id) VALUES (?, ?)", (game_id, cover))

    @staticmethod
    def _replace_artworks(conn: sqlite3.Connection, game_id: int, artworks: Iterable[str]) -> None:
        conn.execute("DELETE FROM artworks WHERE game_id = ?", (game_id,))
        for artwork_id in artworks:
            conn.execute(
                "INSERT OR IGNORE INTO artworks (game_id, artwork_id) VALUES (?, ?)",
                (game_id, artwork_id),
            )

    @staticmethod
    def _replace_genres(conn: sqlite3.Connection, game_id: int, genres: Iterable[str]) -> None:
        conn.execute("DELETE FROM belongs_to WHERE game_id = ?", (game_id,))
        for name in genres:
            conn.execute("INSERT INTO genres (name) VALUES (?) ON CONFLICT(name) DO NOTHING", (name,))
            genre_id = conn.execute("SELECT id FROM genres WHERE name = ?", (name,)).fetchone()[0]
            conn.execute(
                "INSERT OR IGNORE INTO belongs_to (game_id, genre_id) VALUES (?, ?)",
                (game_id, genre_id),
            )

    @staticmethod
    def _replace_company_links(
        conn: sqlite3.Connection, table: str, game_id: int, companies: Iterable[CompanyRecord]
    ) -> None:
        conn.execute(f"DELETE FROM {table} WHERE game_id = ?", (game_id,))
        for company in companies:
            conn.execute(
                """
                INSERT INTO companies (external_id, name) VALUES (?, ?)
                ON CONFLICT(external_id) DO UPDATE SET name = excluded.name
                """,
                (company.external_id, company.name),
            )
            company_id = conn.execute(
                "SELECT id FROM companies WHERE external_id = ?", (company.external_id,)
            ).fetchone()[0]
            conn.execute(
                f"INSERT OR IGNORE INTO {table} (game_id, company_id) VALUES (?, ?)",
                (game_id, company_id),
            )

    @staticmethod
    def _upsert_store_link(conn: sqlite3.Connection, game_id: int, store_id: str) -> None:
        conn.execute(
            """
            INSERT INTO games_store (game_id, store_id) VALUES (?, ?)
            ON CONFLICT(game_id) DO UPDATE SET store_id = excluded.store_id
            """,
            (game_id, store_id),
        )
