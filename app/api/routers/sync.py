"""
app/api/routers/sync.py

Domain sync HTTP endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.domain.sync import DomainSyncConfig, SyncResult
from app.repositories.sync_table_repository import SQLTableSink
from app.schemas.sync import DomainListResponse, LastSyncResponse, SyncResultResponse, SyncTableResponse
from app.services.log_buffer import LogBuffer, get_log_buffer
from app.services.sync_domains import SyncDomainRegistry, get_domain_registry
from app.services.sync_orchestrator import (
    SyncOrchestrator,
    get_last_sync,
    get_sync_orchestrator,
    get_table_sink,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _resolve_domain(registry: SyncDomainRegistry, domain: str) -> DomainSyncConfig:
    try:
        return registry.get(domain)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


def to_response(result: SyncResult, label: str) -> SyncResultResponse:
    return SyncResultResponse(
        domain=result.domain,
        status=result.status.value,
        record_counts=dict(result.record_counts),
        total_records=result.total_records,
        total_duration_ms=result.total_duration_ms,
        error_message=result.error_message,
        summary=result.render_summary(label),
    )


@router.get("/domains", response_model=DomainListResponse)
def list_domains(
    registry: SyncDomainRegistry = Depends(get_domain_registry),
) -> DomainListResponse:
    return DomainListResponse(domains=registry.names())


@router.get("/tables/{table_name}", response_model=SyncTableResponse)
def read_sync_table(
    table_name: str,
    table_sink: SQLTableSink = Depends(get_table_sink),
) -> SyncTableResponse:
    stored = table_sink.read_table(table_name)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sync table '{table_name}' has not been written yet.",
        )
    return SyncTableResponse(
        table_name=stored.table_name,
        header=stored.header,
        rows=stored.rows,
        has_error=stored.has_error,
        updated_at=stored.updated_at,
    )


@router.post("/{domain}", response_model=SyncResultResponse)
def run_domain_sync(
    domain: str,
    registry: SyncDomainRegistry = Depends(get_domain_registry),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
    log_buffer: LogBuffer = Depends(get_log_buffer),
) -> SyncResultResponse:
    """
    Run one domain sync synchronously and flush the execution log afterwards.

    Sync failures are reported in the body with status ERROR, not as HTTP errors.
    """

    config = _resolve_domain(registry, domain)
    result = orchestrator.run_sync(config)
    if not log_buffer.flush():
        logger.warning("Execution log flush failed after sync domain=%s", config.name)
    return to_response(result, config.label)


@router.get("/{domain}/last-sync", response_model=LastSyncResponse)
def read_last_sync(
    domain: str,
    registry: SyncDomainRegistry = Depends(get_domain_registry),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> LastSyncResponse:
    config = _resolve_domain(registry, domain)
    return LastSyncResponse(
        domain=config.name,
        principal=orchestrator.principal,
        last_sync=get_last_sync(orchestrator.state_store, config.name),
    )
