"""
app/repositories/sync_table_repository.py

SQL-backed named output tables for sync results.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select

from db.models.sync_table import SyncTable, SyncTableRow
from db.session import SessionFactory, session_scope

logger = logging.getLogger(__name__)

MAX_CELL_LENGTH = 1000
ERROR_MARKER = "ERROR"


def truncate_text(value: str, max_length: int = MAX_CELL_LENGTH) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


def format_cell_value(value: Any) -> str:
    """
    Normalize one cell to text: None is blank, booleans read Yes/No,
    containers become JSON and long text is truncated.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (Mapping, list, tuple)):
        try:
            return truncate_text(json.dumps(value, default=str, ensure_ascii=False))
        except (TypeError, ValueError):
            return "[Complex Object]"
    return truncate_text(str(value))


def build_error_row(
    header_width: int,
    *,
    source_label: str | None,
    error_message: str | None,
    timestamp: datetime,
) -> list[str]:
    row = [
        ERROR_MARKER,
        source_label or "",
        truncate_text(error_message or "Unknown error"),
        timestamp.isoformat(),
    ]
    width = max(header_width, len(row))
    return row + [""] * (width - len(row))


@dataclass(frozen=True)
class StoredTable:
    table_name: str
    header: list[str]
    rows: list[list[str]] = field(default_factory=list)
    has_error: bool = False
    updated_at: datetime | None = None


class SQLTableSink:
    """
    Tabular sink over `sync_tables` / `sync_table_rows`.

    Writes to one table are serialized by a per-table lock; each write runs
    in a single transaction.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, table_name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(table_name, threading.Lock())

    def write_table(
        self,
        table_name: str,
        header: Sequence[str],
        rows: Sequence[Sequence[Any]] | None,
        *,
        overwrite: bool = True,
        source_label: str | None = None,
        error_message: str | None = None,
    ) -> int:
        has_error = rows is None
        if has_error:
            cells = [
                build_error_row(
                    len(header),
                    source_label=source_label,
                    error_message=error_message,
                    timestamp=self._clock(),
                )
            ]
            overwrite = True
        else:
            cells = [[format_cell_value(value) for value in row] for row in rows]

        with self._lock_for(table_name), session_scope(self._session_factory) as session:
            table = session.get(SyncTable, table_name)
            if table is None:
                table = SyncTable(table_name=table_name, header=list(header), row_count=0)
                session.add(table)
                session.flush()

            if overwrite:
                session.execute(delete(SyncTableRow).where(SyncTableRow.table_name == table_name))
                start = 0
            else:
                current_max = session.scalar(
                    select(func.max(SyncTableRow.position)).where(SyncTableRow.table_name == table_name)
                )
                start = 0 if current_max is None else current_max + 1

            session.add_all(
                [
                    SyncTableRow(table_name=table_name, position=start + offset, cells=row)
                    for offset, row in enumerate(cells)
                ]
            )
            table.header = list(header)
            table.row_count = start + len(cells)
            table.has_error = has_error

        logger.info(
            "Wrote sync table table=%s rows=%s overwrite=%s has_error=%s",
            table_name,
            len(cells),
            overwrite,
            has_error,
        )
        return len(cells)

    def read_table(self, table_name: str) -> StoredTable | None:
        with session_scope(self._session_factory) as session:
            table = session.get(SyncTable, table_name)
            if table is None:
                return None
            rows = session.scalars(
                select(SyncTableRow.cells)
                .where(SyncTableRow.table_name == table_name)
                .order_by(SyncTableRow.position)
            ).all()
            return StoredTable(
                table_name=table.table_name,
                header=list(table.header or []),
                rows=[list(row) for row in rows],
                has_error=table.has_error,
                updated_at=table.updated_at,
            )
