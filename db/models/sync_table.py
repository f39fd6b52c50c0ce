"""
db/models/sync_table.py

Named output tables written by domain syncs, and their rows.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class SyncTable(Base, TimestampMixin):
    __tablename__ = "sync_tables"

    table_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    header: Mapped[list[Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Ordered column names",
    )
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    has_error: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="True when the last write was an error marker",
    )

    rows: Mapped[list["SyncTableRow"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="SyncTableRow.position",
    )


class SyncTableRow(Base):
    __tablename__ = "sync_table_rows"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    table_name: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("sync_tables.table_name", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    cells: Mapped[list[Any]] = mapped_column(JSONDocument, nullable=False, default=list)

    table: Mapped[SyncTable] = relationship(back_populates="rows")

    __table_args__ = (
        Index("ix_sync_table_rows_table_position", "table_name", "position"),
    )
