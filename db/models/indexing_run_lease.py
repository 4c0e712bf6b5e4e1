"""
db/models/indexing_run_lease.py

Named lease rows that keep two sync runs from overlapping.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class IndexingRunLease(Base, TimestampMixin):
    __tablename__ = "indexing_run_leases"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    holder: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Opaque identifier of the process holding the lease",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
