"""
db/models/indexing_run.py

One summary row per indexing sync invocation.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class IndexingRunType:
    INDEXING = "indexing"


class IndexingRun(Base):
    __tablename__ = "indexing_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=IndexingRunType.INDEXING,
    )
    processed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execution_time_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    aborted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    abort_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_indexing_runs_run_type", "run_type"),
        Index("ix_indexing_runs_created_at", "created_at"),
    )
