from __future__ import annotations

__all__: list[str] = ["IGDBClient", "SteamClient", "SteamWebAPI", "TwitchTokenProvider"]

from gameshelf.integrations.igdb_api import IGDBClient
from gameshelf.integrations.steam_client import SteamClient
from gameshelf.integrations.steam_web_api import SteamWebAPI
from gameshelf.integrations.twitch_auth import TwitchTokenProvider
