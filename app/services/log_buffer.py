"""
app/services/log_buffer.py

Batched, retention-managed execution log.

Entries accumulate in memory and reach the durable log table in one bulk
append per flush. A failed flush keeps every entry buffered, so delivery is
at-least-once: the next flush retries the same entries plus anything recorded
meanwhile. Every entry is also mirrored to a real-time channel as it is
recorded.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from app.domain.execution_log import LogBufferState, LogEntry, LogLevel
from app.domain.sync import whole_seconds
from app.logging_utils import LoggingRealtimeChannel
from app.services.sync_ports import ExecutionLogSink, RealtimeChannel

CLEANUP_MODULE = "LOGS"
SYNC_MODULE = "SYNC"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogBuffer:
    """
    In-memory ordered queue of LogEntry objects with flush and retention.

    `record` stamps and appends under one lock, so append order matches
    timestamp order even with several writer threads. Flushes are serialized
    by a second lock so bulk appends never interleave in the durable sink.
    Cleanups hold a third lock from read to delete, since deletes address
    rows by position.
    """

    def __init__(
        self,
        *,
        sink: ExecutionLogSink,
        channel: RealtimeChannel | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sink = sink
        self._channel = channel or LoggingRealtimeChannel()
        self._clock = clock
        self._entries: list[LogEntry] = []
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._cleanup_lock = threading.Lock()

    @property
    def state(self) -> LogBufferState:
        with self._lock:
            return LogBufferState.ACCUMULATING if self._entries else LogBufferState.EMPTY

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def record(
        self,
        level: LogLevel,
        module: str,
        message: str,
        details: str | None = None,
    ) -> LogEntry:
        with self._lock:
            entry = LogEntry(
                timestamp=self._clock(),
                level=level,
                module=module,
                message=message,
                details=details,
            )
            self._entries.append(entry)
        self._channel.emit(entry)
        return entry

    def info(self, module: str, message: str, details: str | None = None) -> LogEntry:
        return self.record(LogLevel.INFO, module, message, details)

    def warning(self, module: str, message: str, details: str | None = None) -> LogEntry:
        return self.record(LogLevel.WARNING, module, message, details)

    def error(self, module: str, message: str, details: str | None = None) -> LogEntry:
        return self.record(LogLevel.ERROR, module, message, details)

    def log_sync_start(self, service: str, principal: str) -> LogEntry:
        return self.info(SYNC_MODULE, f"Starting synchronization: {service}", f"Principal: {principal}")

    def log_sync_end(
        self,
        service: str,
        record_count: int,
        duration_ms: int,
        status: str,
    ) -> LogEntry:
        details = f"{record_count} records, {whole_seconds(duration_ms)}s, {status}"
        level = LogLevel.INFO if status == "SUCCESS" else LogLevel.ERROR
        return self.record(level, SYNC_MODULE, f"Synchronization completed: {service}", details)

    def flush(self) -> bool:
        """
        Bulk-append buffered entries to the durable sink.

        Returns True when nothing was pending or the append succeeded.
        """

        with self._flush_lock:
            with self._lock:
                pending = list(self._entries)
            if not pending:
                return True

            try:
                self._sink.append_rows(pending)
            except Exception as exc:
                self._channel.report_failure(
                    "Failed to flush execution logs to the durable log table.",
                    pending_entries=len(pending),
                    error=str(exc),
                )
                return False

            with self._lock:
                # Only the flushed prefix is dropped; entries recorded while
                # the append was in flight stay buffered.
                del self._entries[: len(pending)]
            return True

    def cleanup_older_than(self, retention_days: int) -> int:
        """
        Delete durable log entries older than `retention_days` days.

        Returns the number of entries deleted. Sink failures are recorded as
        ERROR entries and reported as zero deletions.
        """

        if retention_days <= 0:
            raise ValueError("retention_days must be a positive number of days.")

        with self._cleanup_lock:
            self.flush()
            self.info(CLEANUP_MODULE, f"Starting cleanup of logs older than {retention_days} days.")

            deleted = 0
            try:
                entries = self._sink.read_all_rows()
                if not entries:
                    self.warning(CLEANUP_MODULE, "No logs to clean up.")
                else:
                    cutoff = self._clock() - timedelta(days=retention_days)
                    first_to_keep = _first_index_after(entries, cutoff)

                    if first_to_keep is None:
                        deleted = self._sink.clear_rows(0, len(entries))
                        self.info(CLEANUP_MODULE, f"All {len(entries)} old logs have been deleted.")
                    elif first_to_keep > 0:
                        deleted = self._sink.delete_rows(0, first_to_keep)
                        self.info(CLEANUP_MODULE, f"{first_to_keep} old log entries have been deleted.")
                    else:
                        self.info(CLEANUP_MODULE, "No logs old enough to delete were found.")
            except Exception as exc:
                self.error(CLEANUP_MODULE, f"Log cleanup operation failed: {exc}")
                deleted = 0

            self.flush()
            return deleted


def _first_index_after(entries: list[LogEntry], cutoff: datetime) -> int | None:
    for index, entry in enumerate(entries):
        if entry.timestamp > cutoff:
            return index
    return None


@lru_cache(maxsize=1)
def get_log_buffer() -> LogBuffer:
    """
    Build and cache the process-wide log buffer backed by the SQL log table.
    """

    from app.repositories.execution_log_repository import SQLExecutionLogSink
    from db.session import SessionLocal

    return LogBuffer(sink=SQLExecutionLogSink(session_factory=SessionLocal))
