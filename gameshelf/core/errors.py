"""Error taxonomy shared by the sync core and the command surface.

Every error carries a ``kind`` tag. The command surface serializes only the
tag and the message; the underlying cause stays on ``__cause__`` for logging.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigurationMissingError",
    "ConflictViolationError",
    "ConnectivityError",
    "GameShelfError",
    "MalformedRecordError",
    "NotFoundError",
    "RateLimitedError",
    "StorageError",
    "SyncInProgressError",
]


class GameShelfError(Exception):
    """Base class for all errors raised by Game Shelf."""

    kind: str = "internal"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Serializes the error for the UI boundary (tag + message only)."""
        return {"kind": self.kind, "message": self.message}


class ConnectivityError(GameShelfError):
    """Network failure or timeout talking to an external service."""

    kind = "connectivity"
    retryable = True


class RateLimitedError(GameShelfError):
    """The external service asked us to slow down (HTTP 429).

    Attributes:
        retry_after: Seconds the service asked us to wait, if it said so.
    """

    kind = "rate_limited"

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class MalformedRecordError(GameShelfError):
    """A single upstream record could not be parsed.

    Attributes:
        record_id: Upstream identifier of the record, when it could be read.
    """

    kind = "malformed_record"

    def __init__(self, message: str, record_id: Any = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class ConflictViolationError(GameShelfError):
    """A storage constraint was hit that the upsert path does not handle."""

    kind = "conflict_violation"


class StorageError(GameShelfError):
    """The database could not be read or written."""

    kind = "storage"


class NotFoundError(GameShelfError):
    """A point lookup found nothing."""

    kind = "not_found"


class ConfigurationMissingError(GameShelfError):
    """A required setting is absent or invalid.

    Attributes:
        field: Name of the offending setting.
    """

    kind = "configuration_missing"

    def __init__(self, field: str, reason: str = "is required but not set") -> None:
        super().__init__(f"Setting {field} {reason}")
        self.field = field


class SyncInProgressError(GameShelfError):
    """A library sync is already running."""

    kind = "sync_in_progress"
