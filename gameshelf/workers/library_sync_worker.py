"""
Worker thread for synchronizing the library in the background.

The sync talks to Steam and IGDB and writes many games, so it runs off the
caller's thread. The worker opens its own database connection because
sqlite3 connections are bound to the thread that created them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from PyQt6.QtCore import QThread, pyqtSignal

from gameshelf.core.db import Database
from gameshelf.core.errors import GameShelfError
from gameshelf.services.sync_service import LibrarySyncService

if TYPE_CHECKING:
    from gameshelf.integrations.igdb_api import IGDBClient
    from gameshelf.integrations.steam_web_api import SteamWebAPI

logger = logging.getLogger("gameshelf.workers.sync")

__all__ = ["LibrarySyncWorker"]


class LibrarySyncWorker(QThread):
    """Background thread running one library sync.

    Signals:
        progress: Emitted before each metadata batch with (message, current, total).
        sync_finished: Emitted with the SyncReport when the run ends.
        error: Emitted with a message if the database could not be opened.
    """

    progress = pyqtSignal(str, int, int)
    sync_finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(
        self,
        db_path: Path,
        steam_api: SteamWebAPI,
        igdb: IGDBClient,
        rate_limit_retries: int = 3,
        parent: Any = None,
    ) -> None:
        """Initializes the sync worker.

        Args:
            db_path: Path of the library database.
            steam_api: Steam Web API client.
            igdb: IGDB client.
            rate_limit_retries: Retries per request on HTTP 429.
            parent: Parent QObject.
        """
        super().__init__(parent)
        self.db_path = db_path
        self.steam_api = steam_api
        self.igdb = igdb
        self.rate_limit_retries = rate_limit_retries
        self._cancelled: bool = False

    def cancel(self) -> None:
        """Abandon the sync before its next batch. Committed games stay stored."""
        self._cancelled = True

    def run(self) -> None:
        """Opens the database, runs the sync and emits its report."""
        try:
            database = Database(self.db_path)
        except GameShelfError as exc:
            logger.error("Sync worker could not open the database: %s", exc.message)
            self.error.emit(exc.message)
            return

        with database:
            service = LibrarySyncService(
                self.steam_api,
                self.igdb,
                database,
                rate_limit_retries=self.rate_limit_retries,
            )
            report = service.run(
                progress_callback=self.progress.emit,
                should_cancel=lambda: self._cancelled,
            )

        self.sync_finished.emit(report)
