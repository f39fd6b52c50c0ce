"""
tests/conftest.py

In-memory fakes for every collaborator port. No database, no network.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from app.domain.execution_log import LogEntry
from app.services.log_buffer import LogBuffer

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FakeLogSink:
    def __init__(self, rows: Sequence[LogEntry] = ()) -> None:
        self.rows: list[LogEntry] = list(rows)
        self.append_calls = 0
        self.fail_append = False
        self.fail_read = False
        self.deleted: list[tuple[int, int]] = []
        self.cleared: list[tuple[int, int]] = []

    def append_rows(self, entries: Sequence[LogEntry]) -> None:
        self.append_calls += 1
        if self.fail_append:
            raise ConnectionError("log table unavailable")
        self.rows.extend(entries)

    def read_all_rows(self) -> list[LogEntry]:
        if self.fail_read:
            raise ConnectionError("log table unavailable")
        return list(self.rows)

    def delete_rows(self, range_start: int, count: int) -> int:
        self.deleted.append((range_start, count))
        removed = self.rows[range_start : range_start + count]
        del self.rows[range_start : range_start + count]
        return len(removed)

    def clear_rows(self, range_start: int, count: int) -> int:
        self.cleared.append((range_start, count))
        removed = self.rows[range_start : range_start + count]
        del self.rows[range_start : range_start + count]
        return len(removed)


class FakeChannel:
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []
        self.failures: list[tuple[str, dict[str, Any]]] = []

    def emit(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def report_failure(self, message: str, **fields: Any) -> None:
        self.failures.append((message, fields))


class FakeTableSink:
    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = {}
        self.writes: list[str] = []
        self.overwrite_flags: list[bool] = []
        self.fail_tables: set[str] = set()

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
        if table_name in self.fail_tables:
            raise PermissionError(f"cannot write {table_name}")
        self.writes.append(table_name)
        self.overwrite_flags.append(overwrite)
        if rows is None:
            self.tables[table_name] = {
                "header": list(header),
                "rows": [["ERROR", source_label, error_message]],
                "has_error": True,
            }
            return 1
        self.tables[table_name] = {
            "header": list(header),
            "rows": [list(row) for row in rows],
            "has_error": False,
        }
        return len(rows)


class FakeStateStore:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.fail_set = False

    def get_value(self, key: str) -> str | None:
        return self.values.get(key)

    def set_value(self, key: str, value: str) -> None:
        if self.fail_set:
            raise ConnectionError("state store unavailable")
        self.values[key] = value


class RecordingPacing:
    def __init__(self, events: list[str] | None = None) -> None:
        self.events = events if events is not None else []

    def start(self) -> None:
        self.events.append("start")

    def pause(self) -> None:
        self.events.append("pause")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def log_sink() -> FakeLogSink:
    return FakeLogSink()


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def log_buffer(log_sink: FakeLogSink, channel: FakeChannel, clock: FakeClock) -> LogBuffer:
    return LogBuffer(sink=log_sink, channel=channel, clock=clock)


@pytest.fixture()
def table_sink() -> FakeTableSink:
    return FakeTableSink()


@pytest.fixture()
def state_store() -> FakeStateStore:
    return FakeStateStore()
