"""
Structured logging helpers and the real-time log channel.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from app.domain.execution_log import LogEntry, LogLevel

_LEVEL_MAP = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


class LoggingRealtimeChannel:
    """
    Immediate, synchronous sink that mirrors every execution log entry
    to stdlib logging at the matching level.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("app.execution_log")

    def emit(self, entry: LogEntry) -> None:
        log_event(
            self._logger,
            _LEVEL_MAP.get(entry.level, logging.INFO),
            "execution_log",
            module=entry.module,
            message=entry.message,
            details=entry.details,
            timestamp=entry.timestamp.isoformat(),
        )

    def report_failure(self, message: str, **fields: Any) -> None:
        log_event(self._logger, logging.ERROR, "execution_log_failure", message=message, **fields)
