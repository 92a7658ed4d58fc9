"""Library commands exposed to the UI layer.

Every command returns a CommandResponse instead of raising, so callers can
tell "nothing changed" from "partial success" from "failure" without
parsing messages. Errors cross this boundary as their kind tag and message
only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from gameshelf.core.errors import ConfigurationMissingError, GameShelfError, NotFoundError
from gameshelf.services.search_service import SearchService
from gameshelf.services.sync_service import ProgressCallback, SyncStatus

if TYPE_CHECKING:
    from gameshelf.core.db import Database
    from gameshelf.core.game import Game
    from gameshelf.integrations.steam_client import SteamClient
    from gameshelf.services.asset_service import AssetService
    from gameshelf.services.sync_service import LibrarySyncService

logger = logging.getLogger("gameshelf.library_service")

__all__ = ["CommandResponse", "LibraryService"]


@dataclass
class CommandResponse:
    """Structured result of a library command.

    Attributes:
        ok: True if the command did what was asked (possibly partially).
        data: Command payload (games, a sync report, ...).
        error: ``{"kind", "message"}`` when the command failed.
    """

    ok: bool
    data: Any = None
    error: dict[str, str] | None = None

    @classmethod
    def success(cls, data: Any = None) -> CommandResponse:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: GameShelfError, data: Any = None) -> CommandResponse:
        return cls(ok=False, data=data, error=exc.to_dict())

    def to_dict(self) -> dict[str, Any]:
        """Returns a JSON-serializable dict, converting payload objects."""
        return {"ok": self.ok, "data": _serialize(self.data), "error": self.error}


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value


class LibraryService:
    """Command surface over the database, sync and storefront client.

    Attributes:
        database: Open database (used from the calling thread only).
        sync_service: Orchestrator used by refresh_library(), None for read-only use.
        steam_client: Local storefront client, or None if Steam is not installed.
        search: Name search used for fuzzy listing.
        assets: Image cache, or None if caching is not available.
    """

    def __init__(
        self,
        database: Database,
        sync_service: LibrarySyncService | None = None,
        steam_client: SteamClient | None = None,
        search: SearchService | None = None,
        assets: AssetService | None = None,
    ) -> None:
        self.database = database
        self.sync_service = sync_service
        self.steam_client = steam_client
        self.search = search or SearchService()
        self.assets = assets

    def list_games(self, name: str | None = None, fuzzy: bool = False) -> CommandResponse:
        """Lists games, optionally filtered by name.

        Without ``fuzzy`` the filter is a case-insensitive substring match
        evaluated in the database. With ``fuzzy`` the whole library is
        loaded and names similar to the query are added after the substring
        matches.

        Args:
            name: Name filter. Empty or None lists everything.
            fuzzy: Whether to rank similar names as well.

        Returns:
            Response whose data is a list of Game.
        """

        def run() -> list[Game]:
            if name and fuzzy:
                return self.search.fuzzy_filter(self.database.list_games(), name)
            return self.database.list_games(name)

        return self._execute("list_games", run)

    def get_game(self, game_id: int) -> CommandResponse:
        """Gets one game with its install status.

        Args:
            game_id: Local game id.

        Returns:
            Response whose data is a Game, or a not_found error.
        """

        def run() -> Game:
            game = self.database.get_game(game_id)
            if game is None:
                raise NotFoundError(f"Game {game_id} not found")
            if game.store_id and self.steam_client is not None:
                game.is_installed = self.steam_client.is_installed(game.store_id)
            return game

        return self._execute("get_game", run)

    def refresh_library(self, progress_callback: ProgressCallback | None = None) -> CommandResponse:
        """Synchronizes the library with the owned games.

        Args:
            progress_callback: Optional (message, current, total) callback.

        Returns:
            Response whose data is the SyncReport. ``ok`` is False only when
            the sync was rejected or aborted before any game was processed.
        """
        if self.sync_service is None:
            return CommandResponse.failure(ConfigurationMissingError("sync_service", "is not configured"))
        report = self.sync_service.run(progress_callback)
        if report.status in (SyncStatus.FAILED, SyncStatus.REJECTED):
            return CommandResponse(ok=False, data=report, error=report.error)
        return CommandResponse.success(report)

    def install_request(self, store_id: str) -> CommandResponse:
        """Asks the storefront client to install a game."""
        return self._storefront_action("install", store_id)

    def uninstall_request(self, store_id: str) -> CommandResponse:
        """Asks the storefront client to uninstall a game."""
        return self._storefront_action("uninstall", store_id)

    def cache_game_images(self, game_id: int) -> CommandResponse:
        """Downloads the cover and artworks of a game into the image cache.

        Args:
            game_id: Local game id.

        Returns:
            Response whose data holds the local image paths.
        """

        def run() -> Any:
            if self.assets is None:
                raise NotFoundError("Image cache is not configured")
            game = self.database.get_game(game_id)
            if game is None:
                raise NotFoundError(f"Game {game_id} not found")
            return self.assets.cache_game_images(game)

        return self._execute("cache_game_images", run)

    def _storefront_action(self, action: str, store_id: str) -> CommandResponse:
        def run() -> dict[str, str]:
            if self.steam_client is None:
                raise ConfigurationMissingError("STEAM_PATH", "is not set and no Steam installation was found")
            getattr(self.steam_client, action)(store_id)
            return {"store_id": str(store_id), "action": action}

        return self._execute(f"{action}_request", run)

    @staticmethod
    def _execute(command: str, func: Callable[[], Any]) -> CommandResponse:
        try:
            return CommandResponse.success(func())
        except GameShelfError as exc:
            logger.warning("%s failed (%s): %s", command, exc.kind, exc.message)
            return CommandResponse.failure(exc)
