"""
app/schemas package marker.
"""

from app.schemas.sync import (
    DomainListResponse,
    LastSyncResponse,
    LogBufferStatusResponse,
    LogCleanupResponse,
    LogEntryResponse,
    LogFlushResponse,
    SyncResultResponse,
    SyncTableResponse,
)

__all__ = [
    "DomainListResponse",
    "LastSyncResponse",
    "LogBufferStatusResponse",
    "LogCleanupResponse",
    "LogEntryResponse",
    "LogFlushResponse",
    "SyncResultResponse",
    "SyncTableResponse",
]
