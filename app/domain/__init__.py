"""
app/domain package marker.
"""

from app.domain.execution_log import LogBufferState, LogEntry, LogLevel
from app.domain.sync import (
    AnnotatedDependent,
    DependentEntity,
    DomainSyncConfig,
    PrimaryEntity,
    PrimaryRef,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "AnnotatedDependent",
    "DependentEntity",
    "DomainSyncConfig",
    "LogBufferState",
    "LogEntry",
    "LogLevel",
    "PrimaryEntity",
    "PrimaryRef",
    "SyncResult",
    "SyncStatus",
]
