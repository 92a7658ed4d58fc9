"""Twitch app access tokens for the IGDB API.

IGDB authenticates with a Twitch client ID plus a bearer token obtained
through the OAuth client-credentials flow.
"""

from __future__ import annotations

import logging
import time

from gameshelf.core.errors import ConfigurationMissingError, ConnectivityError
from gameshelf.integrations.http_utils import send_request

logger = logging.getLogger("gameshelf.twitch")

__all__ = ["TwitchTokenProvider"]

_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
_EXPIRY_MARGIN = 60


class TwitchTokenProvider:
    """Fetches and caches a Twitch app access token.

    Attributes:
        client_id: Twitch application client ID (also sent to IGDB as Client-ID).
    """

    def __init__(self, client_id: str, client_secret: str) -> None:
        """Initializes the token provider.

        Args:
            client_id: Twitch application client ID.
            client_secret: Twitch application client secret.

        Raises:
            ConfigurationMissingError: If either credential is empty.
        """
        if not client_id or not client_id.strip():
            raise ConfigurationMissingError("TWITCH_CLIENT_ID")
        if not client_secret or not client_secret.strip():
            raise ConfigurationMissingError("TWITCH_CLIENT_SECRET")

        self.client_id: str = client_id.strip()
        self._client_secret: str = client_secret.strip()
        self._access_token: str | None = None
        self._expires_at: float = 0.0

    def get_token(self) -> str:
        """Returns a cached token, fetching a new one if none is valid."""
        if self._access_token and time.monotonic() < self._expires_at:
            return self._access_token
        return self.refresh_token()

    def refresh_token(self) -> str:
        """Requests a new app access token.

        Returns:
            The new access token.

        Raises:
            ConnectivityError: If Twitch rejects the request or the reply is unusable.
            RateLimitedError: If Twitch rate limits the request.
        """
        response = send_request(
            "POST",
            _TOKEN_URL,
            "Twitch",
            params={
                "client_id": self.client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            },
        )

        if response.status_code != 200:
            raise ConnectivityError(f"Twitch token request failed with HTTP {response.status_code}")

        try:
            data = response.json()
            token = data["access_token"]
            expires_in = int(data.get("expires_in") or 3600)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ConnectivityError("Twitch token response is not usable") from exc

        self._access_token = token
        self._expires_at = time.monotonic() + max(expires_in - _EXPIRY_MARGIN, 0)
        logger.info("Obtained Twitch access token")
        return token
