"""Tests for the SearchService."""

from __future__ import annotations

import pytest

from gameshelf.core.game import Game
from gameshelf.services.search_service import DEFAULT_FUZZY_THRESHOLD, SearchService


def _games(*names: str) -> list[Game]:
    return [Game(id=i, external_id=1000 + i, name=name) for i, name in enumerate(names, start=1)]


class TestFilterGames:
    """Plain substring search."""

    def test_empty_query_returns_all(self) -> None:
        games = _games("Portal", "Half-Life")
        assert SearchService.filter_games(games, "") == games

    def test_case_insensitive(self) -> None:
        games = _games("Portal 2", "Half-Life")
        assert [g.name for g in SearchService.filter_games(games, "PORTAL")] == ["Portal 2"]

    def test_unicode_casefold(self) -> None:
        games = _games("Große Straße", "Portal")
        assert [g.name for g in SearchService.filter_games(games, "STRASSE")] == ["Große Straße"]

    def test_no_match(self) -> None:
        assert SearchService.filter_games(_games("Portal"), "zelda") == []


class TestFuzzyFilter:
    """Substring matches first, then similar names."""

    def test_default_threshold(self) -> None:
        assert SearchService().threshold == DEFAULT_FUZZY_THRESHOLD

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_invalid_threshold(self, threshold: float) -> None:
        with pytest.raises(ValueError):
            SearchService(threshold)

    def test_typo_found(self) -> None:
        games = _games("The Witcher 3", "Portal 2", "Stardew Valley")
        result = SearchService(0.2).fuzzy_filter(games, "witchr")
        assert [g.name for g in result] == ["The Witcher 3"]

    def test_substring_matches_come_first(self) -> None:
        games = _games("Portals of Doom", "Portal", "Mortal Kombat")
        result = SearchService(0.1).fuzzy_filter(games, "portal")
        names = [g.name for g in result]
        assert names[:2] == ["Portals of Doom", "Portal"]
        assert "Mortal Kombat" in names[2:]

    def test_ranked_by_score(self) -> None:
        games = _games("Hollow Night", "Hollow Knight Silksong", "Hallow")
        result = SearchService(0.1).fuzzy_filter(games, "hollow knite")
        names = [g.name for g in result]
        assert names.index("Hollow Night") < names.index("Hallow")

    def test_threshold_excludes_unrelated(self) -> None:
        games = _games("Portal", "Stardew Valley")
        assert SearchService(0.3).fuzzy_filter(games, "xyzzy") == []

    def test_empty_query_returns_all(self) -> None:
        games = _games("Portal")
        assert SearchService().fuzzy_filter(games, "") == games
