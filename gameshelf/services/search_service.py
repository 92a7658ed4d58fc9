"""Search service with substring and fuzzy name matching.

Plain searches are case-insensitive substring matches. Fuzzy searches keep
the substring hits first and then add names whose trigram similarity to
the query reaches a threshold, best match first.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gameshelf.services.similarity import similarity

if TYPE_CHECKING:
    from gameshelf.core.game import Game

logger = logging.getLogger("gameshelf.search_service")

__all__ = ["DEFAULT_FUZZY_THRESHOLD", "SearchService"]

DEFAULT_FUZZY_THRESHOLD = 0.3


class SearchService:
    """Service handling game name search.

    Attributes:
        threshold: Minimum similarity for a fuzzy match.
    """

    def __init__(self, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold

    @staticmethod
    def filter_games(games: list[Game], query: str) -> list[Game]:
        """Filters games by case-insensitive substring match on the name.

        Args:
            games: Games to filter.
            query: The search string. Empty returns all games.

        Returns:
            Matching games, in input order.
        """
        if not query:
            return games

        needle = query.casefold()
        return [g for g in games if needle in g.name.casefold()]

    def fuzzy_filter(self, games: list[Game], query: str) -> list[Game]:
        """Filters games by substring match, falling back to trigram similarity.

        Args:
            games: Candidate games (usually the whole library).
            query: The search string. Empty returns all games.

        Returns:
            Substring matches in input order, followed by the remaining games
            scoring at least ``threshold``, highest score first.
        """
        if not query:
            return games

        needle = query.casefold()
        exact: list[Game] = []
        scored: list[tuple[float, Game]] = []
        for game in games:
            name = game.name.casefold()
            if needle in name:
                exact.append(game)
                continue
            score = similarity(needle, name)
            if score >= self.threshold:
                scored.append((score, game))

        scored.sort(key=lambda item: (-item[0], item[1].name.casefold()))
        logger.debug("Fuzzy search %r: %d substring, %d similar", query, len(exact), len(scored))
        return exact + [game for _, game in scored]
