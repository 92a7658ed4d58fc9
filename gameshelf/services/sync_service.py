"""Library synchronization.

Pulls the owned-games list from Steam, fetches IGDB metadata for it batch
by batch and upserts every record on its own. The local library only ever
grows or gets updated: a failure stops further work but never removes
games that are already stored.

State flow::

    IDLE -> FETCHING_OWNED_IDS -> FETCHING_METADATA <-> UPSERTING -> DONE
                                                                   | PARTIAL_FAILURE
                                                                   | FAILED
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from gameshelf.core.errors import GameShelfError, RateLimitedError, SyncInProgressError

if TYPE_CHECKING:
    from gameshelf.core.db import Database
    from gameshelf.integrations.igdb_api import IGDBClient
    from gameshelf.integrations.steam_web_api import SteamWebAPI

logger = logging.getLogger("gameshelf.sync")

__all__ = [
    "LibrarySyncService",
    "ProgressCallback",
    "SyncFailure",
    "SyncReport",
    "SyncState",
    "SyncStatus",
]

T = TypeVar("T")
ProgressCallback = Callable[[str, int, int], None]

_SYNC_LOCK = threading.Lock()


class SyncState(Enum):
    """Lifecycle of one sync run."""

    IDLE = "idle"
    FETCHING_OWNED_IDS = "fetching_owned_ids"
    FETCHING_METADATA = "fetching_metadata"
    UPSERTING = "upserting"
    DONE = "done"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


class SyncStatus(str, Enum):
    """Outcome reported to the caller."""

    DONE = "done"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SyncFailure:
    """One record (or batch) that could not be synchronized.

    Attributes:
        record: IGDB id of the record, or a batch label.
        kind: Error kind tag.
        message: Human-readable reason.
    """

    record: str
    kind: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"record": self.record, "kind": self.kind, "message": self.message}


@dataclass
class SyncReport:
    """Summary of one sync run.

    Attributes:
        status: Overall outcome.
        inserted: Games stored for the first time.
        updated: Games that already existed and were refreshed.
        errors: Per-record and per-batch failures.
        cancelled: True if the run was abandoned between batches.
        owned: Number of owned ids Steam reported.
        error: Top-level error for FAILED and REJECTED runs.
    """

    status: SyncStatus = SyncStatus.DONE
    inserted: int = 0
    updated: int = 0
    errors: list[SyncFailure] = field(default_factory=list)
    cancelled: bool = False
    owned: int = 0
    error: dict[str, str] | None = None

    @property
    def failed(self) -> int:
        return len(self.errors)

    def add_failure(self, record: Any, exc: GameShelfError) -> None:
        self.errors.append(SyncFailure(record=str(record), kind=exc.kind, message=exc.message))

    def to_dict(self) -> dict[str, Any]:
        """Returns a JSON-serializable summary."""
        return {
            "status": self.status.value,
            "inserted": self.inserted,
            "updated": self.updated,
            "failed": self.failed,
            "errors": [failure.to_dict() for failure in self.errors],
            "cancelled": self.cancelled,
            "owned": self.owned,
            "error": self.error,
        }


class LibrarySyncService:
    """Runs accumulate-only library syncs, one at a time per process.

    Attributes:
        steam_api: Source of the owned app ids.
        igdb: Metadata adapter.
        database: Database the records are upserted into.
        rate_limit_retries: Retries after a rate-limit response before giving up.
        backoff_base: Delay in seconds for the first retry when the service
            did not say how long to wait; doubled on each retry.
    """

    def __init__(
        self,
        steam_api: SteamWebAPI,
        igdb: IGDBClient,
        database: Database,
        rate_limit_retries: int = 3,
        backoff_base: float = 2.0,
        lock: threading.Lock | None = None,
    ) -> None:
        """Initializes the sync service.

        Args:
            steam_api: Steam Web API client.
            igdb: IGDB client.
            database: Open database for this thread.
            rate_limit_retries: Retries per request on HTTP 429.
            backoff_base: Base delay for exponential backoff.
            lock: Mutex guarding concurrent runs. Defaults to a process-wide lock.
        """
        self.steam_api = steam_api
        self.igdb = igdb
        self.database = database
        self.rate_limit_retries = rate_limit_retries
        self.backoff_base = backoff_base
        self._lock = lock if lock is not None else _SYNC_LOCK
        self._cancelled = threading.Event()
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def cancel(self) -> None:
        """Request that the running sync stops before its next batch."""
        self._cancelled.set()

    def run(
        self,
        progress_callback: ProgressCallback | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> SyncReport:
        """Synchronizes the local library with the owned games.

        Args:
            progress_callback: Called with (message, current, total) before
                each metadata batch.
            should_cancel: Polled between batches in addition to cancel().

        Returns:
            The run summary. A run started while another one holds the lock
            returns immediately with status REJECTED.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Sync requested while another sync is running, rejected")
            error = SyncInProgressError("A library sync is already running")
            return SyncReport(status=SyncStatus.REJECTED, error=error.to_dict())

        self._cancelled.clear()
        try:
            return self._run(progress_callback, should_cancel)
        finally:
            self._lock.release()

    def _run(
        self,
        progress_callback: ProgressCallback | None,
        should_cancel: Callable[[], bool] | None,
    ) -> SyncReport:
        report = SyncReport()

        self._state = SyncState.FETCHING_OWNED_IDS
        try:
            owned_ids = self._with_backoff(self.steam_api.get_owned_game_ids)
        except GameShelfError as exc:
            logger.error("Sync aborted, owned games unavailable: %s", exc.message)
            self._state = SyncState.FAILED
            report.status = SyncStatus.FAILED
            report.error = exc.to_dict()
            return report

        report.owned = len(owned_ids)
        if not owned_ids:
            logger.info("No owned games reported, nothing to sync")
            self._state = SyncState.DONE
            report.status = SyncStatus.UNCHANGED
            return report

        batches = self.igdb.chunk_ids(owned_ids)
        total = len(batches)
        for index, batch in enumerate(batches, start=1):
            if self._cancelled.is_set() or (should_cancel is not None and should_cancel()):
                logger.info("Sync cancelled before batch %d/%d", index, total)
                report.cancelled = True
                break

            self._state = SyncState.FETCHING_METADATA
            if progress_callback:
                progress_callback(f"Fetching metadata batch {index}/{total}", index, total)

            try:
                result = self._with_backoff(lambda: self.igdb.fetch_store_batch(batch))
            except GameShelfError as exc:
                # Later batches would hit the same outage; stop here and keep what is stored.
                logger.error("Metadata batch %d/%d failed, stopping: %s", index, total, exc.message)
                report.add_failure(f"batch {index}/{total}", exc)
                break

            for failure in result.failures:
                logger.warning("Skipping malformed record %s: %s", failure.record_id, failure.message)
                report.add_failure(failure.record_id, failure)

            self._state = SyncState.UPSERTING
            for record in result.records:
                try:
                    outcome = self.database.upsert_complete_game(record)
                except GameShelfError as exc:
                    logger.warning("Failed to store game %s: %s", record.external_id, exc.message)
                    report.add_failure(record.external_id, exc)
                    continue
                if outcome.inserted:
                    report.inserted += 1
                else:
                    report.updated += 1

        report.status = self._final_status(report)
        self._state = SyncState.PARTIAL_FAILURE if report.errors else SyncState.DONE
        logger.info(
            "Sync finished (%s): %d inserted, %d updated, %d failed",
            report.status.value,
            report.inserted,
            report.updated,
            report.failed,
        )
        return report

    def _with_backoff(self, call: Callable[[], T]) -> T:
        """Calls ``call``, sleeping and retrying on RateLimitedError."""
        attempt = 0
        while True:
            try:
                return call()
            except RateLimitedError as exc:
                if attempt >= self.rate_limit_retries:
                    raise
                delay = exc.retry_after if exc.retry_after is not None else self.backoff_base * (2**attempt)
                attempt += 1
                logger.warning(
                    "Rate limited, retrying in %.1fs (attempt %d/%d)", delay, attempt, self.rate_limit_retries
                )
                time.sleep(delay)

    @staticmethod
    def _final_status(report: SyncReport) -> SyncStatus:
        if report.errors:
            return SyncStatus.PARTIAL_FAILURE
        if report.inserted == 0 and report.updated == 0 and not report.cancelled:
            return SyncStatus.UNCHANGED
        return SyncStatus.DONE
