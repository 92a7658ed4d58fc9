"""Steam Web API client for the owned-games list.

Uses IPlayerService/GetOwnedGames/v1 to list the app IDs a Steam account
owns. Failures are raised as ConnectivityError / RateLimitedError so the
sync can abort before touching the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from gameshelf.core.errors import ConfigurationMissingError, ConnectivityError
from gameshelf.integrations.http_utils import send_request

logger = logging.getLogger("gameshelf.steam_web_api")

__all__ = ["OwnedGame", "SteamWebAPI"]

_OWNED_GAMES_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v1"


@dataclass(frozen=True)
class OwnedGame:
    """Frozen dataclass for one entry of the owned-games list.

    Attributes:
        app_id: Steam application ID.
        name: Display name (empty if Steam did not send one).
        playtime_minutes: Total playtime in minutes.
    """

    app_id: int
    name: str = ""
    playtime_minutes: int = 0


class SteamWebAPI:
    """Steam Web API client bound to one account.

    Attributes:
        api_key: Steam Web API key for authentication.
        steam_id: SteamID64 of the account whose library is read.
    """

    def __init__(self, api_key: str, steam_id: str) -> None:
        """Initializes the SteamWebAPI client.

        Args:
            api_key: Steam Web API key. Must not be empty.
            steam_id: SteamID64 of the account. Must not be empty.

        Raises:
            ConfigurationMissingError: If api_key or steam_id is empty.
        """
        if not api_key or not api_key.strip():
            raise ConfigurationMissingError("STEAM_API_KEY")
        if not steam_id or not steam_id.strip():
            raise ConfigurationMissingError("STEAM_PROFILE_ID")
        self.api_key: str = api_key.strip()
        self.steam_id: str = steam_id.strip()

    def get_owned_games(self) -> list[OwnedGame]:
        """Fetches all games owned by the configured account.

        Returns:
            Owned games, in the order Steam returns them. An account whose
            library is empty (or hidden) yields an empty list.

        Raises:
            ConnectivityError: On network failure, timeout or an unusable reply.
            RateLimitedError: If Steam rate limits the request.
        """
        params: dict[str, str] = {
            "key": self.api_key,
            "steamid": self.steam_id,
            "include_appinfo": "1",
            "include_played_free_games": "1",
            "format": "json",
        }
        response = send_request("GET", _OWNED_GAMES_URL, "Steam", params=params)

        if response.status_code in (401, 403):
            raise ConnectivityError(f"Steam rejected the API key (HTTP {response.status_code})")
        if response.status_code != 200:
            raise ConnectivityError(f"Steam owned games request failed with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ConnectivityError("Steam returned invalid JSON") from exc

        payload = data.get("response", {}) if isinstance(data, dict) else None
        raw_games = payload.get("games", []) if isinstance(payload, dict) else None
        if not isinstance(raw_games, list):
            raise ConnectivityError("Steam returned an unexpected payload")

        games = [self._parse_item(item) for item in raw_games if isinstance(item, dict)]
        owned = [g for g in games if g is not None]
        logger.info("Steam reports %d owned games", len(owned))
        return owned

    def get_owned_game_ids(self) -> list[int]:
        """Returns the app IDs of all owned games, without duplicates."""
        return list(dict.fromkeys(game.app_id for game in self.get_owned_games()))

    @staticmethod
    def _parse_item(raw: dict[str, Any]) -> OwnedGame | None:
        """Parses one raw owned-game dict, or None if it has no app id."""
        app_id = raw.get("appid")
        if not isinstance(app_id, int) or isinstance(app_id, bool):
            logger.debug("Ignoring owned game without appid: %r", raw)
            return None
        playtime = raw.get("playtime_forever", 0)
        return OwnedGame(
            app_id=app_id,
            name=raw.get("name", "") if isinstance(raw.get("name"), str) else "",
            playtime_minutes=playtime if isinstance(playtime, int) else 0,
        )
