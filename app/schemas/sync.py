"""
app/schemas/sync.py

Response schemas for sync and execution log operations.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SyncResultResponse(BaseModel):
    """
    API response model for one domain sync run.
    """

    domain: str
    status: str
    record_counts: dict[str, int] = Field(default_factory=dict)
    total_records: int = Field(..., ge=0)
    total_duration_ms: int = Field(..., ge=0)
    error_message: str | None = None
    summary: str


class LastSyncResponse(BaseModel):
    domain: str
    principal: str
    last_sync: datetime | None = None


class DomainListResponse(BaseModel):
    domains: list[str]


class LogFlushResponse(BaseModel):
    flushed: bool
    pending_entries: int = Field(..., ge=0)


class LogCleanupResponse(BaseModel):
    retention_days: int = Field(..., ge=1)
    deleted_entries: int = Field(..., ge=0)


class LogEntryResponse(BaseModel):
    timestamp: datetime
    level: str
    module: str
    message: str
    details: str | None = None


class LogBufferStatusResponse(BaseModel):
    """
    Entries recorded but not yet flushed to the durable log table.
    """

    state: str
    pending_entries: int = Field(..., ge=0)
    entries: list[LogEntryResponse] = Field(default_factory=list)


class SyncTableResponse(BaseModel):
    table_name: str
    header: list[str]
    rows: list[list[str]] = Field(default_factory=list)
    has_error: bool = False
    updated_at: datetime | None = None
