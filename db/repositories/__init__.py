"""
Repository layer exports.
"""

from db.repositories.attempt_log_repository import AttemptLogRepository
from db.repositories.catalog_repository import SQLAlchemyCatalogStore
from db.repositories.run_lease_repository import RunLeaseRepository
from db.repositories.run_summary_repository import RunSummaryRepository

__all__ = [
    "AttemptLogRepository",
    "RunLeaseRepository",
    "RunSummaryRepository",
    "SQLAlchemyCatalogStore",
]
