"""Game read queries.

Every query starts from games and LEFT JOINs each relation, so a game with
no cover, artworks, genres or companies is still returned. Relation values
are aggregated per game id with json_group_array(DISTINCT ...), which keeps
one row per game however many relation rows multiply in the join.
Companies are aggregated as "<id>:<name>" so two companies sharing a name
stay two entries.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from gameshelf.core.errors import NotFoundError, StorageError
from gameshelf.core.game import Game

logger = logging.getLogger("gameshelf.database")

__all__ = ["GameQueryMixin"]

_BASE_QUERY = """
SELECT
    games.id AS id,
    games.external_id AS external_id,
    games.name AS name,
    games.summary AS summary,
    games.storyline AS storyline,
    games.release_date AS release_date,
    games_store.store_id AS store_id,
    json_group_array(DISTINCT covers.cover_id) AS covers,
    json_group_array(DISTINCT artworks.artwork_id) AS artworks,
    json_group_array(DISTINCT genres.name) AS genres,
    json_group_array(DISTINCT CASE WHEN developers.id IS NOT NULL THEN developers.id || ':' || developers.name END)
        AS developers,
    json_group_array(DISTINCT CASE WHEN publishers.id IS NOT NULL THEN publishers.id || ':' || publishers.name END)
        AS publishers
FROM games
LEFT JOIN games_store ON games_store.game_id = games.id
LEFT JOIN covers ON covers.game_id = games.id
LEFT JOIN artworks ON artworks.game_id = games.id
LEFT JOIN belongs_to ON belongs_to.game_id = games.id
LEFT JOIN genres ON genres.id = belongs_to.genre_id
LEFT JOIN developed_by ON developed_by.game_id = games.id
LEFT JOIN companies AS developers ON developers.id = developed_by.company_id
LEFT JOIN published_by ON published_by.game_id = games.id
LEFT JOIN companies AS publishers ON publishers.id = published_by.company_id
"""

_GROUP_ORDER = """
GROUP BY games.id
ORDER BY games.name COLLATE NOCASE, games.id
"""


class GameQueryMixin:
    """Mixin providing read access to games and their relations.

    Requires ConnectionBase attributes: conn.
    """

    def list_games(self, name_filter: str | None = None) -> list[Game]:
        """Get all games, optionally filtered by name.

        The filter is a case-insensitive substring match evaluated by
        SQLite (Unicode-aware via the connection's casefold() function).

        Args:
            name_filter: Substring to look for in game names. Empty or
                None returns every game.

        Returns:
            Games ordered by name; an empty list when nothing matches.
        """
        if name_filter:
            query = _BASE_QUERY + "WHERE instr(casefold(games.name), ?) > 0" + _GROUP_ORDER
            params: tuple = (name_filter.casefold(),)
        else:
            query = _BASE_QUERY + _GROUP_ORDER
            params = ()

        rows = self._fetch_all(query, params)
        return [self._map_game_row(row) for row in rows]

    def get_game(self, game_id: int) -> Game | None:
        """Get a single game by local ID.

        Args:
            game_id: Local game ID.

        Returns:
            The game, or None if it does not exist.
        """
        rows = self._fetch_all(_BASE_QUERY + "WHERE games.id = ?" + _GROUP_ORDER, (game_id,))
        if not rows:
            return None
        return self._map_game_row(rows[0])

    def get_game_id_by_external_id(self, external_id: int) -> int | None:
        """Look up the local ID for a catalog game ID."""
        row = self.conn.execute("SELECT id FROM games WHERE external_id = ?", (external_id,)).fetchone()
        return row[0] if row else None

    def get_store_id(self, game_id: int) -> str:
        """Get the storefront app ID linked to a game.

        Args:
            game_id: Local game ID.

        Returns:
            The storefront app ID.

        Raises:
            NotFoundError: If the game has no store link (or does not exist).
        """
        row = self.conn.execute("SELECT store_id FROM games_store WHERE game_id = ?", (game_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Game {game_id} has no store link")
        return row[0]

    def get_game_count(self) -> int:
        """Get total number of games in the database."""
        return self.conn.execute("SELECT COUNT(*) FROM games").fetchone()[0]

    def _fetch_all(self, query: str, params: tuple) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    @classmethod
    def _map_game_row(cls, row: sqlite3.Row) -> Game:
        """Turn one aggregated row into a Game."""
        covers = cls._parse_json_array(row["covers"])
        return Game(
            id=row["id"],
            external_id=row["external_id"],
            name=row["name"],
            summary=row["summary"],
            storyline=row["storyline"],
            release_date=row["release_date"],
            cover=covers[0] if covers else None,
            artworks=cls._parse_json_array(row["artworks"]),
            genres=sorted(cls._parse_json_array(row["genres"])),
            developers=cls._company_names(row["developers"]),
            publishers=cls._company_names(row["publishers"]),
            store_id=row["store_id"],
        )

    @staticmethod
    def _parse_json_array(raw: str | None) -> list[str]:
        """Decode a json_group_array column, dropping the NULL left by an empty join."""
        if not raw:
            return []
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Unreadable aggregate column: %r", raw)
            return []
        return [str(v) for v in values if v is not None]

    @classmethod
    def _company_names(cls, raw: str | None) -> list[str]:
        """Names from an "<id>:<name>" aggregate, one per company."""
        return sorted(value.partition(":")[2] for value in cls._parse_json_array(raw))
