"""
Collaborator interfaces consumed by the sync orchestrator and the log buffer.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from app.domain.execution_log import LogEntry


class TabularSink(Protocol):
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
        """
        Replace or append rows under a named table. With rows=None a single
        error row is written instead. Returns the number of rows written.
        """
        ...


class DurableStateStore(Protocol):
    def get_value(self, key: str) -> str | None:
        ...

    def set_value(self, key: str, value: str) -> None:
        ...


class ExecutionLogSink(Protocol):
    """
    Durable log table. Positions are zero-based over oldest-first order.
    """

    def append_rows(self, entries: Sequence[LogEntry]) -> None:
        ...

    def read_all_rows(self) -> list[LogEntry]:
        ...

    def delete_rows(self, range_start: int, count: int) -> int:
        ...

    def clear_rows(self, range_start: int, count: int) -> int:
        ...


class RealtimeChannel(Protocol):
    def emit(self, entry: LogEntry) -> None:
        ...

    def report_failure(self, message: str, **fields: Any) -> None:
        ...
