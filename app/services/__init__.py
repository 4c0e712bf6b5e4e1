"""
app/services package marker.
"""

from app.services.indexing_sync_service import (
    IndexingSyncRunner,
    IndexingSyncService,
    RunAlreadyInProgressError,
    get_indexing_sync_service,
)

__all__ = [
    "IndexingSyncRunner",
    "IndexingSyncService",
    "RunAlreadyInProgressError",
    "get_indexing_sync_service",
]
