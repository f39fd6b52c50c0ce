"""create sync output, execution log and sync state tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sync_tables",
        sa.Column("table_name", sa.String(length=100), nullable=False),
        sa.Column("header", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("has_error", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("table_name", name="pk_sync_tables"),
    )

    op.create_table(
        "sync_table_rows",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("table_name", sa.String(length=100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("cells", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.ForeignKeyConstraint(
            ["table_name"],
            ["sync_tables.table_name"],
            name="fk_sync_table_rows_table_name_sync_tables",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sync_table_rows"),
    )
    op.create_index(
        "ix_sync_table_rows_table_position",
        "sync_table_rows",
        ["table_name", "position"],
        unique=False,
    )

    op.create_table(
        "execution_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("level", sa.String(length=16), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_execution_logs"),
    )
    op.create_index("ix_execution_logs_logged_at", "execution_logs", ["logged_at"], unique=False)
    op.create_index("ix_execution_logs_level", "execution_logs", ["level"], unique=False)

    op.create_table(
        "sync_state_values",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("principal", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_sync_state_values"),
        sa.UniqueConstraint("principal", "key", name="uq_sync_state_values_principal_key"),
    )


def downgrade() -> None:
    op.drop_table("sync_state_values")
    op.drop_index("ix_execution_logs_level", table_name="execution_logs")
    op.drop_index("ix_execution_logs_logged_at", table_name="execution_logs")
    op.drop_table("execution_logs")
    op.drop_index("ix_sync_table_rows_table_position", table_name="sync_table_rows")
    op.drop_table("sync_table_rows")
    op.drop_table("sync_tables")
