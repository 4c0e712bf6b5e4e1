"""
app/schemas package marker.
"""

from app.schemas.indexing import (
    IndexingReportResponse,
    ItemStatsResponse,
    OutcomeResponse,
    RunHistoryEntryResponse,
    RunSummaryResponse,
    UrlStatusResponse,
)

__all__ = [
    "IndexingReportResponse",
    "ItemStatsResponse",
    "OutcomeResponse",
    "RunHistoryEntryResponse",
    "RunSummaryResponse",
    "UrlStatusResponse",
]
