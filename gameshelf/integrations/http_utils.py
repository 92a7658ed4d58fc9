"""Shared HTTP helpers for the external service clients.

Maps transport failures onto the error taxonomy: network problems and
timeouts become ConnectivityError, HTTP 429 becomes RateLimitedError.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from gameshelf.core.errors import ConnectivityError, RateLimitedError

logger = logging.getLogger("gameshelf.http")

__all__ = ["DEFAULT_TIMEOUT", "parse_retry_after", "send_request"]

DEFAULT_TIMEOUT = 30


def parse_retry_after(response: requests.Response) -> float | None:
    """Read the Retry-After header (seconds form only)."""
    raw = response.headers.get("Retry-After") if response.headers else None
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except (TypeError, ValueError):
        return None


def send_request(method: str, url: str, service: str, **kwargs: Any) -> requests.Response:
    """Send one HTTP request and classify failures.

    Only 429 and transport errors are raised here; other status codes are
    returned for the caller to interpret.

    Args:
        method: HTTP method ("GET" or "POST").
        url: Target URL.
        service: Service name used in error messages.
        **kwargs: Passed through to requests.request().

    Returns:
        The response.

    Raises:
        RateLimitedError: On HTTP 429.
        ConnectivityError: On connection failure or timeout.
    """
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    try:
        response = requests.request(method, url, **kwargs)
    except requests.Timeout as exc:
        raise ConnectivityError(f"{service} request timed out") from exc
    except requests.RequestException as exc:
        raise ConnectivityError(f"{service} request failed: {exc}") from exc

    if response.status_code == 429:
        retry_after = parse_retry_after(response)
        logger.warning("%s rate limited (429), retry after %s", service, retry_after)
        raise RateLimitedError(f"{service} rate limit reached", retry_after=retry_after)

    return response
