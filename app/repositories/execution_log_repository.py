"""
app/repositories/execution_log_repository.py

SQL-backed durable execution log table.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select

from app.domain.execution_log import LogEntry, LogLevel
from db.models.execution_log import ExecutionLogRecord
from db.session import SessionFactory, session_scope

logger = logging.getLogger(__name__)


class SQLExecutionLogSink:
    """
    Execution log sink over the `execution_logs` table.

    Positions passed to `delete_rows` / `clear_rows` are zero-based offsets
    into the table ordered by id, oldest first.
    """

    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def append_rows(self, entries: Sequence[LogEntry]) -> None:
        if not entries:
            return
        with session_scope(self._session_factory) as session:
            session.add_all(
                [
                    ExecutionLogRecord(
                        logged_at=entry.timestamp,
                        level=entry.level.value,
                        module=entry.module,
                        message=entry.message,
                        details=entry.details,
                    )
                    for entry in entries
                ]
            )

    def read_all_rows(self) -> list[LogEntry]:
        with session_scope(self._session_factory) as session:
            records = session.scalars(select(ExecutionLogRecord).order_by(ExecutionLogRecord.id)).all()
            return [_to_entry(record) for record in records]

    def delete_rows(self, range_start: int, count: int) -> int:
        if count <= 0:
            return 0
        with session_scope(self._session_factory) as session:
            ids = session.scalars(
                select(ExecutionLogRecord.id)
                .order_by(ExecutionLogRecord.id)
                .offset(range_start)
                .limit(count)
            ).all()
            if not ids:
                return 0
            result = session.execute(delete(ExecutionLogRecord).where(ExecutionLogRecord.id.in_(ids)))
        deleted = int(result.rowcount or 0)
        logger.info("Deleted execution log rows start=%s count=%s deleted=%s", range_start, count, deleted)
        return deleted

    def clear_rows(self, range_start: int, count: int) -> int:
        # Rows carry no formatting to preserve, so clearing is a delete.
        return self.delete_rows(range_start, count)


def _to_entry(record: ExecutionLogRecord) -> LogEntry:
    try:
        level = LogLevel(record.level)
    except ValueError:
        logger.warning("Unknown log level in execution_logs id=%s level=%s", record.id, record.level)
        level = LogLevel.INFO
    return LogEntry(
        timestamp=record.logged_at,
        level=level,
        module=record.module,
        message=record.message,
        details=record.details,
    )
