"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.indexing_attempt import IndexingAttempt
from db.models.indexing_run import IndexingRun, IndexingRunType
from db.models.indexing_run_lease import IndexingRunLease
from db.models.job import Job

__all__ = [
    "IndexingAttempt",
    "IndexingRun",
    "IndexingRunLease",
    "IndexingRunType",
    "Job",
]
