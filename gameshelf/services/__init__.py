from __future__ import annotations

from gameshelf.services.library_service import CommandResponse, LibraryService
from gameshelf.services.search_service import SearchService
from gameshelf.services.sync_service import LibrarySyncService, SyncReport, SyncStatus

__all__: list[str] = [
    "CommandResponse",
    "LibraryService",
    "LibrarySyncService",
    "SearchService",
    "SyncReport",
    "SyncStatus",
]
