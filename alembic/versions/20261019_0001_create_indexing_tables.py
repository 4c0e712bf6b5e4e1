"""create indexing_log, indexing_runs and indexing_run_leases tables

The job board database may already hold an ``indexing_log`` table written by
the site itself. In that case the table is adopted as is: only missing
indexes are added. Downgrade drops the indexes it owns but never the
``indexing_log`` table, which the site keeps writing to.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


INDEXING_LOG_INDEXES = {
    "ix_indexing_log_job_id": ["job_id"],
    "ix_indexing_log_created_at": ["created_at"],
    "ix_indexing_log_job_id_action_success": ["job_id", "action", "success"],
}


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())
    if not inspector.has_table("indexing_log"):
        op.create_table(
            "indexing_log",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("job_id", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(length=50), nullable=False, comment="index, remove"),
            sa.Column("success", sa.Boolean(), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        existing_indexes: set[str] = set()
    else:
        existing_indexes = {index["name"] for index in inspector.get_indexes("indexing_log")}
    for index_name, columns in INDEXING_LOG_INDEXES.items():
        if index_name not in existing_indexes:
            op.create_index(index_name, "indexing_log", columns, unique=False)

    op.create_table(
        "indexing_runs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("run_type", sa.String(length=50), nullable=False),
        sa.Column("processed_count", sa.Integer(), nullable=False),
        sa.Column("successful_count", sa.Integer(), nullable=False),
        sa.Column("skipped_count", sa.Integer(), nullable=False),
        sa.Column("failed_count", sa.Integer(), nullable=False),
        sa.Column("execution_time_seconds", sa.Float(), nullable=False),
        sa.Column("aborted", sa.Boolean(), nullable=False),
        sa.Column("abort_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_indexing_runs_run_type", "indexing_runs", ["run_type"], unique=False)
    op.create_index("ix_indexing_runs_created_at", "indexing_runs", ["created_at"], unique=False)

    op.create_table(
        "indexing_run_leases",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "holder",
            sa.String(length=255),
            nullable=False,
            comment="Opaque identifier of the process holding the lease",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("indexing_run_leases")
    op.drop_index("ix_indexing_runs_created_at", table_name="indexing_runs")
    op.drop_index("ix_indexing_runs_run_type", table_name="indexing_runs")
    op.drop_table("indexing_runs")
    for index_name in INDEXING_LOG_INDEXES:
        op.drop_index(index_name, table_name="indexing_log")
