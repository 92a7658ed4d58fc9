#!/usr/bin/env python3
"""Game Shelf - composition root and command line entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import Sequence

from gameshelf.config import Config, load_config
from gameshelf.core.db import Database
from gameshelf.core.errors import GameShelfError
from gameshelf.core.logging import logger, setup_logging
from gameshelf.integrations.igdb_api import IGDBClient
from gameshelf.integrations.steam_client import SteamClient
from gameshelf.integrations.steam_web_api import SteamWebAPI
from gameshelf.integrations.twitch_auth import TwitchTokenProvider
from gameshelf.services.asset_service import AssetService
from gameshelf.services.library_service import CommandResponse, LibraryService
from gameshelf.services.search_service import SearchService
from gameshelf.services.sync_service import LibrarySyncService
from gameshelf.version import __app_name__, __version__

__all__ = ["AppContext", "init", "main"]


@dataclass
class AppContext:
    """Everything init() wires together.

    Attributes:
        config: The validated configuration.
        database: Database opened on the calling thread.
        steam_api: Steam Web API client (also handed to sync workers).
        igdb: IGDB client (also handed to sync workers).
        library: Command surface for the UI layer.
    """

    config: Config
    database: Database
    steam_api: SteamWebAPI
    igdb: IGDBClient
    library: LibraryService

    def close(self) -> None:
        self.database.close()


def init(config: Config | None = None, log_level: int = logging.INFO) -> AppContext:
    """Builds the application core.

    Loads and validates the configuration, opens the database (applying
    pending migrations) and constructs every client. Missing credentials
    fail here, before any request is made.

    Args:
        config: Configuration to use instead of loading one.
        log_level: Console logging level.

    Returns:
        The wired application context.

    Raises:
        ConfigurationMissingError: If a required setting is missing.
        StorageError: If the database cannot be opened or migrated.
    """
    if config is None:
        config = load_config()

    setup_logging(log_level, log_file=config.LOG_FILE)
    logger.info("%s %s starting", __app_name__, __version__)

    steam_api = SteamWebAPI(config.STEAM_API_KEY, config.STEAM_PROFILE_ID)
    igdb = IGDBClient(
        TwitchTokenProvider(config.TWITCH_CLIENT_ID, config.TWITCH_CLIENT_SECRET),
        batch_size=config.METADATA_BATCH_SIZE,
    )

    if config.STEAM_PATH:
        logger.info("Steam found at %s", config.STEAM_PATH)
        steam_client: SteamClient | None = SteamClient(config.STEAM_PATH, config.ASSUME_INSTALLED_WITHOUT_PROGRESS)
    else:
        logger.warning("Steam installation not found, install status and install requests are unavailable")
        steam_client = None

    database = Database(config.DB_PATH)
    sync_service = LibrarySyncService(steam_api, igdb, database, rate_limit_retries=config.RATE_LIMIT_RETRIES)
    library = LibraryService(
        database,
        sync_service,
        steam_client=steam_client,
        search=SearchService(config.FUZZY_THRESHOLD),
        assets=AssetService(config.ASSETS_DIR),
    )
    return AppContext(config=config, database=database, steam_api=steam_api, igdb=igdb, library=library)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gameshelf", description=f"{__app_name__} library manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("refresh", help="synchronize the library with the owned games")

    list_cmd = commands.add_parser("list", help="list games")
    list_cmd.add_argument("name", nargs="?", help="name filter")
    list_cmd.add_argument("--fuzzy", action="store_true", help="include similar names")

    show_cmd = commands.add_parser("show", help="show one game")
    show_cmd.add_argument("game_id", type=int)

    for name in ("install", "uninstall"):
        cmd = commands.add_parser(name, help=f"ask Steam to {name} a game")
        cmd.add_argument("store_id")

    images_cmd = commands.add_parser("images", help="cache cover and artworks of a game")
    images_cmd.add_argument("game_id", type=int)
    return parser


def _dispatch(library: LibraryService, args: argparse.Namespace) -> CommandResponse:
    if args.command == "refresh":
        return library.refresh_library(
            lambda message, current, total: logger.info("%s", message),
        )
    if args.command == "list":
        return library.list_games(args.name, fuzzy=args.fuzzy)
    if args.command == "show":
        return library.get_game(args.game_id)
    if args.command == "install":
        return library.install_request(args.store_id)
    if args.command == "uninstall":
        return library.uninstall_request(args.store_id)
    return library.cache_game_images(args.game_id)


def main(argv: Sequence[str] | None = None) -> int:
    """Runs one command and prints its JSON response.

    Returns:
        Exit code (0 = success, 1 = failure).
    """
    args = _build_parser().parse_args(argv)

    try:
        context = init(log_level=logging.DEBUG if args.verbose else logging.INFO)
    except GameShelfError as exc:
        print(json.dumps({"ok": False, "data": None, "error": exc.to_dict()}, indent=2))
        return 1

    try:
        response = _dispatch(context.library, args)
    finally:
        context.close()

    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
