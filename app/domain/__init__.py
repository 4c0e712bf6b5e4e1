"""
app/domain package marker.
"""

from app.domain.indexing import (
    AttemptAction,
    CatalogItem,
    CatalogStatus,
    Decision,
    Outcome,
    PhaseSummary,
    RequestSource,
    RunResult,
)

__all__ = [
    "AttemptAction",
    "CatalogItem",
    "CatalogStatus",
    "Decision",
    "Outcome",
    "PhaseSummary",
    "RequestSource",
    "RunResult",
]
