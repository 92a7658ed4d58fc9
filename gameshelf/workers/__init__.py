"""Worker threads package.

Contains background worker threads for long-running operations.
"""

from __future__ import annotations

from gameshelf.workers.game_query_worker import GameQueryWorker
from gameshelf.workers.library_sync_worker import LibrarySyncWorker

__all__ = [
    "GameQueryWorker",
    "LibrarySyncWorker",
]
