"""
tests/test_log_buffer.py

Pytest unit tests for LogBuffer.

All tests are pure Python: in-memory sink and channel, deterministic clock.

Coverage
--------
- State transitions EMPTY / ACCUMULATING
- Real-time mirroring of every recorded entry
- Flush success, empty flush, failing flush keeps entries (at-least-once)
- Entries recorded during an in-flight flush stay buffered
- Retention cleanup: partial prefix, everything old, nothing old, empty table
- Retention cleanup rejects non-positive values and survives sink failures
- Overlapping cleanups delete the old prefix exactly once
- Sync start / end entries
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import timedelta

import pytest

from app.domain.execution_log import LogBufferState, LogEntry, LogLevel
from app.services.log_buffer import LogBuffer
from conftest import BASE_TIME, FakeChannel, FakeClock, FakeLogSink


def _aged_entry(days: int, message: str = "old") -> LogEntry:
    return LogEntry(
        timestamp=BASE_TIME - timedelta(days=days),
        level=LogLevel.INFO,
        module="TEST",
        message=f"{message} {days}d",
    )


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecording:
    def test_starts_empty(self, log_buffer: LogBuffer) -> None:
        assert log_buffer.state is LogBufferState.EMPTY
        assert log_buffer.pending_count == 0

    def test_record_moves_to_accumulating(self, log_buffer: LogBuffer) -> None:
        log_buffer.info("GBP", "hello")
        assert log_buffer.state is LogBufferState.ACCUMULATING
        assert log_buffer.pending_count == 1

    def test_every_entry_is_mirrored_immediately(self, log_buffer: LogBuffer, channel: FakeChannel) -> None:
        first = log_buffer.info("GBP", "one")
        second = log_buffer.warning("GBP", "two", "detail")
        assert channel.entries == [first, second]

    def test_timestamps_are_non_decreasing(self, log_buffer: LogBuffer) -> None:
        for index in range(5):
            log_buffer.info("GBP", f"entry {index}")
        stamps = [entry.timestamp for entry in log_buffer.snapshot()]
        assert stamps == sorted(stamps)

    def test_level_helpers(self, log_buffer: LogBuffer) -> None:
        log_buffer.info("M", "i")
        log_buffer.warning("M", "w")
        log_buffer.error("M", "e")
        assert [entry.level for entry in log_buffer.snapshot()] == [
            LogLevel.INFO,
            LogLevel.WARNING,
            LogLevel.ERROR,
        ]


# ---------------------------------------------------------------------------
# Flush
# ---------------------------------------------------------------------------


class TestFlush:
    def test_flush_appends_in_order_and_empties(self, log_buffer: LogBuffer, log_sink: FakeLogSink) -> None:
        entries = [log_buffer.info("GBP", f"entry {i}") for i in range(3)]

        assert log_buffer.flush() is True
        assert log_sink.rows == entries
        assert log_sink.append_calls == 1
        assert log_buffer.state is LogBufferState.EMPTY

    def test_flush_with_nothing_pending_is_a_no_op(self, log_buffer: LogBuffer, log_sink: FakeLogSink) -> None:
        assert log_buffer.flush() is True
        assert log_sink.append_calls == 0

    def test_failed_flush_keeps_entries_and_reports(
        self,
        log_buffer: LogBuffer,
        log_sink: FakeLogSink,
        channel: FakeChannel,
    ) -> None:
        entries = [log_buffer.info("GBP", f"entry {i}") for i in range(3)]
        log_sink.fail_append = True

        assert log_buffer.flush() is False
        assert log_buffer.pending_count == 3
        assert log_buffer.snapshot() == entries
        assert len(channel.failures) == 1
        assert channel.failures[0][1]["pending_entries"] == 3

    def test_retry_after_failure_delivers_everything_once(
        self,
        log_buffer: LogBuffer,
        log_sink: FakeLogSink,
    ) -> None:
        first = [log_buffer.info("GBP", f"entry {i}") for i in range(2)]
        log_sink.fail_append = True
        log_buffer.flush()

        log_sink.fail_append = False
        late = log_buffer.info("GBP", "late")

        assert log_buffer.flush() is True
        assert log_sink.rows == [*first, late]
        assert log_buffer.state is LogBufferState.EMPTY

    def test_entries_recorded_during_flush_stay_buffered(self, clock: FakeClock, channel: FakeChannel) -> None:
        class ReentrantSink(FakeLogSink):
            buffer: LogBuffer | None = None

            def append_rows(self, entries):  # type: ignore[override]
                super().append_rows(entries)
                if self.buffer is not None and self.append_calls == 1:
                    self.buffer.info("GBP", "recorded mid-flush")

        sink = ReentrantSink()
        buffer = LogBuffer(sink=sink, channel=channel, clock=clock)
        sink.buffer = buffer
        buffer.info("GBP", "before")

        assert buffer.flush() is True
        assert [entry.message for entry in sink.rows] == ["before"]
        assert [entry.message for entry in buffer.snapshot()] == ["recorded mid-flush"]


# ---------------------------------------------------------------------------
# Retention cleanup
# ---------------------------------------------------------------------------


class TestCleanup:
    def _buffer_with_rows(self, ages: list[int]) -> tuple[LogBuffer, FakeLogSink]:
        sink = FakeLogSink(rows=[_aged_entry(age) for age in ages])
        return LogBuffer(sink=sink, channel=FakeChannel(), clock=FakeClock()), sink

    def test_deletes_only_the_old_prefix(self) -> None:
        buffer, sink = self._buffer_with_rows([40, 25, 10, 1])

        deleted = buffer.cleanup_older_than(30)

        assert deleted == 1
        assert sink.deleted == [(0, 1)]
        assert [entry.message for entry in sink.rows[:3]] == ["old 25d", "old 10d", "old 1d"]

    def test_clears_everything_when_all_entries_are_old(self) -> None:
        buffer, sink = self._buffer_with_rows([60, 45, 31])

        assert buffer.cleanup_older_than(30) == 3
        assert sink.cleared == [(0, 3)]
        assert sink.deleted == []

    def test_nothing_old_enough(self) -> None:
        buffer, sink = self._buffer_with_rows([10, 1])

        assert buffer.cleanup_older_than(30) == 0
        assert sink.deleted == []
        assert sink.cleared == []
        assert any("No logs old enough" in entry.message for entry in sink.rows)

    def test_empty_table_records_warning(self) -> None:
        buffer, sink = self._buffer_with_rows([])

        assert buffer.cleanup_older_than(30) == 0
        warnings = [entry for entry in sink.rows if entry.level is LogLevel.WARNING]
        assert [entry.message for entry in warnings] == ["No logs to clean up."]

    def test_cleanup_flushes_its_own_entries(self) -> None:
        buffer, sink = self._buffer_with_rows([40, 1])

        buffer.cleanup_older_than(30)

        assert buffer.pending_count == 0
        assert all(entry.module == "LOGS" for entry in sink.rows[1:])

    def test_pending_entries_are_flushed_before_reading(self) -> None:
        buffer, sink = self._buffer_with_rows([])
        buffer.info("GBP", "pending")

        assert buffer.cleanup_older_than(30) == 0
        assert sink.rows[0].message == "pending"

    @pytest.mark.parametrize("retention_days", [0, -5])
    def test_rejects_non_positive_retention(self, log_buffer: LogBuffer, retention_days: int) -> None:
        with pytest.raises(ValueError):
            log_buffer.cleanup_older_than(retention_days)

    def test_sink_failure_is_recorded_as_error(self) -> None:
        buffer, sink = self._buffer_with_rows([40])
        sink.fail_read = True

        assert buffer.cleanup_older_than(30) == 0
        errors = [entry for entry in sink.rows if entry.level is LogLevel.ERROR]
        assert len(errors) == 1
        assert "Log cleanup operation failed" in errors[0].message

    def test_overlapping_cleanups_delete_the_old_prefix_once(self) -> None:
        sink = GatedLogSink(rows=[_aged_entry(age) for age in [40, 25, 10, 1]])
        buffer = LogBuffer(sink=sink, channel=FakeChannel(), clock=FakeClock())
        results: list[int] = []

        first = threading.Thread(target=lambda: results.append(buffer.cleanup_older_than(30)))
        second = threading.Thread(target=lambda: results.append(buffer.cleanup_older_than(30)))
        first.start()
        assert sink.reading.wait(timeout=5)
        second.start()
        second.join(timeout=0.2)
        sink.gate.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert sorted(results) == [0, 1]
        assert sink.deleted == [(0, 1)]
        assert [entry.message for entry in sink.rows if entry.module == "TEST"] == [
            "old 25d",
            "old 10d",
            "old 1d",
        ]


class GatedLogSink(FakeLogSink):
    """Log sink whose first read blocks until the gate opens."""

    def __init__(self, rows: Sequence[LogEntry] = ()) -> None:
        super().__init__(rows)
        self.reading = threading.Event()
        self.gate = threading.Event()
        self.reads = 0

    def read_all_rows(self) -> list[LogEntry]:
        self.reads += 1
        if self.reads == 1:
            self.reading.set()
            self.gate.wait(timeout=5)
        return super().read_all_rows()


# ---------------------------------------------------------------------------
# Sync start / end entries
# ---------------------------------------------------------------------------


class TestSyncEntries:
    def test_sync_start(self, log_buffer: LogBuffer) -> None:
        entry = log_buffer.log_sync_start("Business Profile", "ops@example.com")
        assert entry.module == "SYNC"
        assert entry.message == "Starting synchronization: Business Profile"
        assert entry.details == "Principal: ops@example.com"

    def test_sync_end_success(self, log_buffer: LogBuffer) -> None:
        entry = log_buffer.log_sync_end("Merchant Center", 12, 2600, "SUCCESS")
        assert entry.level is LogLevel.INFO
        assert entry.details == "12 records, 3s, SUCCESS"

    def test_sync_end_rounds_half_seconds_up(self, log_buffer: LogBuffer) -> None:
        entry = log_buffer.log_sync_end("Merchant Center", 4, 2500, "SUCCESS")
        assert entry.details == "4 records, 3s, SUCCESS"

    def test_sync_end_error_is_error_level(self, log_buffer: LogBuffer) -> None:
        entry = log_buffer.log_sync_end("Merchant Center", 0, 100, "ERROR")
        assert entry.level is LogLevel.ERROR
