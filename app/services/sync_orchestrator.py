"""
app/services/sync_orchestrator.py

Fan-out synchronization orchestrator.

One run lists the primary entities of a domain, fans out to every dependent
listing per primary entity and persists each collection to its own table.

Failure policy:
- primary listing failure is fatal: error marker in the primary table, ERROR result
- dependent listing failure is isolated: WARNING entry, empty collection for that entity
- table write failure ends the run with an ERROR result
- last-sync marker failure is a WARNING only
Callers always receive a SyncResult, never an exception.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from app.config import get_sync_settings
from app.connectors.base import ConnectorRequestError
from app.domain.sync import (
    AnnotatedDependent,
    DomainSyncConfig,
    PrimaryEntity,
    PrimaryRef,
    SyncResult,
    SyncStatus,
    TableSpec,
)
from app.services.log_buffer import LogBuffer, get_log_buffer
from app.services.pacing import NoPacing, PacingPolicy, build_pacing_policy
from app.services.sync_ports import DurableStateStore, TabularSink

if TYPE_CHECKING:
    from app.repositories.sync_table_repository import SQLTableSink

logger = logging.getLogger(__name__)

LAST_SYNC_KEY_PREFIX = "LAST_SYNC_"
RATE_LIMIT_MESSAGE = (
    "Rate limit exceeded (429). The upstream API may require elevated quota approval."
)


class SyncConfigError(RuntimeError):
    """Raised when a domain sync configuration is invalid."""


class SyncPersistenceError(RuntimeError):
    """Raised when an output table cannot be written."""


def last_sync_key(domain: str) -> str:
    return f"{LAST_SYNC_KEY_PREFIX}{domain}"


def parse_last_sync(value: str | None) -> datetime | None:
    """
    Parse a stored last-sync marker. Unreadable markers read as missing.
    """

    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unreadable last sync marker value=%s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_last_sync(state_store: DurableStateStore, domain: str) -> datetime | None:
    return parse_last_sync(state_store.get_value(last_sync_key(domain)))


def validate_domain_config(config: DomainSyncConfig) -> None:
    categories = config.categories
    if len(set(categories)) != len(categories):
        raise SyncConfigError(f"Domain '{config.name}' declares duplicate categories: {categories}.")

    table_names = [config.primary.table.table_name, *(d.table.table_name for d in config.dependents)]
    if len(set(table_names)) != len(table_names):
        raise SyncConfigError(f"Domain '{config.name}' writes two categories to the same table.")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _reason(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class SyncOrchestrator:
    """
    Runs one domain sync end to end and reports every notable step into
    the injected LogBuffer.
    """

    def __init__(
        self,
        *,
        table_sink: TabularSink,
        log_buffer: LogBuffer,
        state_store: DurableStateStore,
        pacing: PacingPolicy | None = None,
        principal: str = "default",
        clock: Callable[[], datetime] = _utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tables = table_sink
        self._log = log_buffer
        self._state = state_store
        self._pacing = pacing or NoPacing()
        self._principal = principal
        self._clock = clock
        self._monotonic = monotonic

    @property
    def principal(self) -> str:
        return self._principal

    @property
    def state_store(self) -> DurableStateStore:
        return self._state

    @property
    def table_sink(self) -> TabularSink:
        return self._tables

    def run_sync(self, config: DomainSyncConfig) -> SyncResult:
        started = self._monotonic()
        self._log.log_sync_start(config.label, self._principal)
        try:
            validate_domain_config(config)
            return self._run(config, started)
        except SyncPersistenceError as exc:
            return self._error_result(config, started, _reason(exc))
        except Exception as exc:
            logger.exception("Unhandled sync failure domain=%s error=%s", config.name, exc)
            self._log.error(config.module, f"Synchronization failed: {_reason(exc)}")
            return self._error_result(config, started, _reason(exc))

    def _run(self, config: DomainSyncConfig, started: float) -> SyncResult:
        module = config.module
        self._log.info(module, f"Listing {config.primary.category} for {config.label}.")

        try:
            primaries = list(config.primary.list_entities())
        except Exception as exc:
            return self._fail_primary(config, exc, started)

        if not primaries:
            self._log.warning(module, f"No {config.primary.category} found for {config.label}.")
            return SyncResult(
                domain=config.name,
                status=SyncStatus.SUCCESS,
                record_counts=config.empty_counts(),
                total_duration_ms=self._elapsed_ms(started),
            )

        synced_at = self._clock()
        self._write(config, config.primary.table, primaries, synced_at)

        collected: dict[str, list[AnnotatedDependent]] = {
            listing.category: [] for listing in config.dependents
        }

        self._pacing.start()
        for index, primary in enumerate(primaries):
            if index > 0:
                self._pacing.pause()
            self._run_primary_hook(config, primary)

            ref = PrimaryRef(
                entity_id=primary.entity_id,
                display_name=primary.display_name,
                extra={name: primary.attributes.get(name) for name in config.primary_display_fields},
            )
            for listing in config.dependents:
                try:
                    fetched = list(listing.list_entities(primary))
                except Exception as exc:
                    self._log.warning(
                        module,
                        f"Could not get {listing.category} for {primary.display_name} "
                        f"({primary.entity_id}): {_reason(exc)}",
                    )
                    continue
                collected[listing.category].extend(
                    AnnotatedDependent(entity=entity, primary=ref) for entity in fetched
                )

        for listing in config.dependents:
            self._write(config, listing.table, collected[listing.category], synced_at)

        record_counts = {config.primary.category: len(primaries)}
        record_counts.update({category: len(items) for category, items in collected.items()})
        total_records = sum(record_counts.values())
        duration_ms = self._elapsed_ms(started)

        self._log.log_sync_end(config.label, total_records, duration_ms, SyncStatus.SUCCESS.value)
        self._log.info(
            module,
            f"{config.label} sync completed: {total_records} records in {duration_ms}ms",
            ", ".join(f"{category}={count}" for category, count in record_counts.items()),
        )
        self._store_last_sync(config)

        return SyncResult(
            domain=config.name,
            status=SyncStatus.SUCCESS,
            record_counts=record_counts,
            total_duration_ms=duration_ms,
        )

    def _fail_primary(self, config: DomainSyncConfig, exc: Exception, started: float) -> SyncResult:
        message = self.surface_message(config, exc)
        self._log.error(config.module, f"Synchronization failed: {message}")

        table = config.primary.table
        try:
            self._tables.write_table(
                table.table_name,
                table.header,
                None,
                overwrite=True,
                source_label=config.label,
                error_message=message,
            )
        except Exception as write_exc:
            logger.exception(
                "Failed to write error marker table=%s error=%s",
                table.table_name,
                write_exc,
            )
            self._log.error(
                config.module,
                f"Could not write error marker to {table.table_name}: {_reason(write_exc)}",
            )

        return self._error_result(config, started, message)

    @staticmethod
    def surface_message(config: DomainSyncConfig, exc: Exception) -> str:
        """
        Human-readable message for a fatal failure. Rate-limit failures get an
        actionable quota hint instead of the raw transport message.
        """

        if isinstance(exc, ConnectorRequestError) and exc.is_rate_limited:
            if config.quota_hint:
                return f"{RATE_LIMIT_MESSAGE} {config.quota_hint}"
            return RATE_LIMIT_MESSAGE
        return _reason(exc)

    def _error_result(self, config: DomainSyncConfig, started: float, message: str) -> SyncResult:
        duration_ms = self._elapsed_ms(started)
        self._log.log_sync_end(config.label, 0, duration_ms, SyncStatus.ERROR.value)
        return SyncResult(
            domain=config.name,
            status=SyncStatus.ERROR,
            record_counts=config.empty_counts(),
            total_duration_ms=duration_ms,
            error_message=message,
        )

    def _write(
        self,
        config: DomainSyncConfig,
        table: TableSpec,
        items: Sequence[Any],
        synced_at: datetime,
    ) -> None:
        rows = [list(table.to_row(item, synced_at)) for item in items]
        try:
            self._tables.write_table(table.table_name, table.header, rows, overwrite=True)
        except Exception as exc:
            logger.exception("Failed to write table=%s error=%s", table.table_name, exc)
            self._log.error(config.module, f"Could not write to table {table.table_name}: {_reason(exc)}")
            raise SyncPersistenceError(f"Could not write to table {table.table_name}: {_reason(exc)}") from exc
        self._log.info(config.module, f"{len(rows)} records written to {table.table_name}.")

    def _run_primary_hook(self, config: DomainSyncConfig, primary: PrimaryEntity) -> None:
        if config.primary_hook is None:
            return
        try:
            config.primary_hook(primary)
        except Exception as exc:
            self._log.info(config.module, f"Note: pre-fetch step for {primary.entity_id}: {_reason(exc)}")

    def _store_last_sync(self, config: DomainSyncConfig) -> None:
        try:
            self._state.set_value(last_sync_key(config.name), self._clock().isoformat())
        except Exception as exc:
            logger.warning("Failed to store last sync marker domain=%s error=%s", config.name, exc)
            self._log.warning(config.module, f"Could not record last sync time: {_reason(exc)}")

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._monotonic() - started) * 1000))


@lru_cache(maxsize=1)
def get_table_sink() -> SQLTableSink:
    from app.repositories.sync_table_repository import SQLTableSink
    from db.session import SessionLocal

    return SQLTableSink(session_factory=SessionLocal)


@lru_cache(maxsize=1)
def get_sync_orchestrator() -> SyncOrchestrator:
    """
    Build and cache the SQL-backed orchestrator used by the API, the
    scheduler and the CLI.
    """

    from app.repositories.sync_state_repository import SQLStateStore
    from db.session import SessionLocal

    settings = get_sync_settings()
    return SyncOrchestrator(
        table_sink=get_table_sink(),
        log_buffer=get_log_buffer(),
        state_store=SQLStateStore(session_factory=SessionLocal, principal=settings.principal),
        pacing=build_pacing_policy(strategy=settings.pacing_strategy, seconds=settings.pacing_seconds),
        principal=settings.principal,
    )
