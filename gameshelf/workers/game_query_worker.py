"""
Worker thread for reading games in the background.

Runs list_games / get_game on its own database connection and hands the
CommandResponse back through a signal.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from PyQt6.QtCore import QThread, pyqtSignal

from gameshelf.core.db import Database
from gameshelf.core.errors import GameShelfError
from gameshelf.services.library_service import CommandResponse, LibraryService
from gameshelf.services.search_service import DEFAULT_FUZZY_THRESHOLD, SearchService

if TYPE_CHECKING:
    from gameshelf.integrations.steam_client import SteamClient

logger = logging.getLogger("gameshelf.workers.query")

__all__ = ["GameQueryWorker"]


class GameQueryWorker(QThread):
    """Background thread for one game query.

    Lists games when ``game_id`` is None, otherwise loads that single game.

    Signals:
        result_ready: Emitted with the CommandResponse of the query.
    """

    result_ready = pyqtSignal(object)

    def __init__(
        self,
        db_path: Path,
        name_filter: str | None = None,
        fuzzy: bool = False,
        game_id: int | None = None,
        steam_client: SteamClient | None = None,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        parent: Any = None,
    ) -> None:
        super().__init__(parent)
        self.db_path = db_path
        self.name_filter = name_filter
        self.fuzzy = fuzzy
        self.game_id = game_id
        self.steam_client = steam_client
        self.fuzzy_threshold = fuzzy_threshold

    def run(self) -> None:
        """Executes the query and emits its response."""
        try:
            database = Database(self.db_path)
        except GameShelfError as exc:
            logger.error("Query worker could not open the database: %s", exc.message)
            self.result_ready.emit(CommandResponse.failure(exc))
            return

        with database:
            service = LibraryService(
                database,
                steam_client=self.steam_client,
                search=SearchService(self.fuzzy_threshold),
            )
            if self.game_id is not None:
                response = service.get_game(self.game_id)
            else:
                response = service.list_games(self.name_filter, fuzzy=self.fuzzy)

        self.result_ready.emit(response)
