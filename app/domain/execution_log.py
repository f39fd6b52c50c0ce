"""
app/domain/execution_log.py

Domain models for structured execution log entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LogLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogBufferState(str, Enum):
    EMPTY = "EMPTY"
    ACCUMULATING = "ACCUMULATING"


@dataclass(frozen=True)
class LogEntry:
    """
    One reportable event. Timestamps are timezone-aware UTC.
    """

    timestamp: datetime
    level: LogLevel
    module: str
    message: str
    details: str | None = None

    def as_row(self) -> list[str]:
        return [
            self.timestamp.isoformat(),
            self.level.value,
            self.module,
            self.message,
            self.details or "",
        ]


LOG_TABLE_HEADER: tuple[str, ...] = ("Timestamp", "Level", "Module", "Message", "Details")
