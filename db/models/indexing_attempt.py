"""
db/models/indexing_attempt.py

Append-only log of every index/remove attempt against the indexing API.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class IndexingAttempt(Base):
    """
    One attempt to notify the search index about a catalog item.

    Rows are never updated. The newest row per (job_id, action) is the
    authoritative cooldown and dedup state.
    """

    __tablename__ = "indexing_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="index, remove",
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_indexing_log_job_id", "job_id"),
        Index("ix_indexing_log_created_at", "created_at"),
        Index("ix_indexing_log_job_id_action_success", "job_id", "action", "success"),
    )

    def __repr__(self) -> str:
        return (
            f"<IndexingAttempt id={self.id} job_id={self.job_id} "
            f"action={self.action!r} success={self.success}>"
        )
