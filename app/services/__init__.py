"""
app/services package marker.
"""

from app.services.log_buffer import LogBuffer, get_log_buffer
from app.services.pacing import PacingPolicy, build_pacing_policy
from app.services.sync_domains import SyncDomainRegistry, build_domain_registry, get_domain_registry
from app.services.sync_orchestrator import (
    SyncConfigError,
    SyncOrchestrator,
    SyncPersistenceError,
    get_sync_orchestrator,
)

__all__ = [
    "LogBuffer",
    "get_log_buffer",
    "PacingPolicy",
    "build_pacing_policy",
    "SyncDomainRegistry",
    "build_domain_registry",
    "get_domain_registry",
    "SyncConfigError",
    "SyncOrchestrator",
    "SyncPersistenceError",
    "get_sync_orchestrator",
]
