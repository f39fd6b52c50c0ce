"""
app/api/routers/logs.py

Execution log buffer endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.schemas.sync import (
    LogBufferStatusResponse,
    LogCleanupResponse,
    LogEntryResponse,
    LogFlushResponse,
)
from app.services.log_buffer import LogBuffer, get_log_buffer

router = APIRouter(prefix="/logs", tags=["logs"])


@router.post("/flush", response_model=LogFlushResponse)
def flush_logs(log_buffer: LogBuffer = Depends(get_log_buffer)) -> LogFlushResponse:
    flushed = log_buffer.flush()
    return LogFlushResponse(flushed=flushed, pending_entries=log_buffer.pending_count)


@router.post("/cleanup", response_model=LogCleanupResponse)
def cleanup_logs(
    retention_days: int = Query(..., ge=1, description="Delete entries older than this many days"),
    log_buffer: LogBuffer = Depends(get_log_buffer),
) -> LogCleanupResponse:
    deleted = log_buffer.cleanup_older_than(retention_days)
    return LogCleanupResponse(retention_days=retention_days, deleted_entries=deleted)


@router.get("/buffer", response_model=LogBufferStatusResponse)
def read_log_buffer(log_buffer: LogBuffer = Depends(get_log_buffer)) -> LogBufferStatusResponse:
    entries = log_buffer.snapshot()
    return LogBufferStatusResponse(
        state=log_buffer.state.value,
        pending_entries=len(entries),
        entries=[
            LogEntryResponse(
                timestamp=entry.timestamp,
                level=entry.level.value,
                module=entry.module,
                message=entry.message,
                details=entry.details,
            )
            for entry in entries
        ],
    )
