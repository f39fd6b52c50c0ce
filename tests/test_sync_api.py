"""
tests/test_sync_api.py

FastAPI router tests with dependency overrides. No database, no network.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import logs_router, sync_router
from app.domain.sync import (
    DependentEntity,
    DependentListing,
    DomainSyncConfig,
    PrimaryEntity,
    PrimaryListing,
    TableSpec,
)
from app.repositories.sync_table_repository import StoredTable
from app.services.log_buffer import LogBuffer, get_log_buffer
from app.services.sync_domains import SyncDomainRegistry, get_domain_registry
from app.services.sync_orchestrator import SyncOrchestrator, get_sync_orchestrator, get_table_sink
from conftest import FakeChannel, FakeClock, FakeLogSink, FakeStateStore, FakeTableSink

SYNC_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _config(name: str = "shop", fail: bool = False) -> DomainSyncConfig:
    def list_accounts() -> list[PrimaryEntity]:
        if fail:
            raise RuntimeError("upstream down")
        return [PrimaryEntity("1", "One", {}), PrimaryEntity("2", "Two", {})]

    def list_items(account: PrimaryEntity) -> list[DependentEntity]:
        return [DependentEntity(f"{account.entity_id}-a", account.entity_id, {})]

    return DomainSyncConfig(
        name=name,
        label="Shop",
        module="SHP",
        primary=PrimaryListing(
            category="accounts",
            list_entities=list_accounts,
            table=TableSpec(f"{name.upper()}_ACCOUNTS", ("ID",), lambda item, at: [item.entity_id]),
        ),
        dependents=(
            DependentListing(
                category="items",
                list_entities=list_items,
                table=TableSpec(f"{name.upper()}_ITEMS", ("ID",), lambda item, at: [item.entity.entity_id]),
            ),
        ),
    )


class ReadableTableSink(FakeTableSink):
    def read_table(self, table_name: str) -> StoredTable | None:
        table = self.tables.get(table_name)
        if table is None:
            return None
        return StoredTable(
            table_name=table_name,
            header=table["header"],
            rows=[[str(cell) for cell in row] for row in table["rows"]],
            has_error=table["has_error"],
        )


@pytest.fixture()
def log_sink() -> FakeLogSink:
    return FakeLogSink()


@pytest.fixture()
def buffer(log_sink: FakeLogSink) -> LogBuffer:
    return LogBuffer(sink=log_sink, channel=FakeChannel(), clock=FakeClock())


@pytest.fixture()
def state_store() -> FakeStateStore:
    return FakeStateStore()


@pytest.fixture()
def tables() -> ReadableTableSink:
    return ReadableTableSink()


@pytest.fixture()
def client(buffer: LogBuffer, state_store: FakeStateStore, tables: ReadableTableSink) -> TestClient:
    registry = SyncDomainRegistry()
    registry.register(_config("shop"))
    registry.register(_config("broken", fail=True))
    orchestrator = SyncOrchestrator(
        table_sink=tables,
        log_buffer=buffer,
        state_store=state_store,
        principal="ops@example.com",
        clock=lambda: SYNC_TIME,
    )

    application = FastAPI()
    application.include_router(sync_router)
    application.include_router(logs_router)
    application.dependency_overrides[get_domain_registry] = lambda: registry
    application.dependency_overrides[get_sync_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_log_buffer] = lambda: buffer
    application.dependency_overrides[get_table_sink] = lambda: tables
    return TestClient(application)


# ---------------------------------------------------------------------------
# /sync
# ---------------------------------------------------------------------------


class TestSyncEndpoints:
    def test_list_domains(self, client: TestClient) -> None:
        response = client.get("/sync/domains")
        assert response.status_code == 200
        assert response.json() == {"domains": ["broken", "shop"]}

    def test_run_sync_success_flushes_logs(self, client: TestClient, log_sink: FakeLogSink, buffer: LogBuffer) -> None:
        response = client.post("/sync/shop")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "SUCCESS"
        assert body["record_counts"] == {"accounts": 2, "items": 2}
        assert body["total_records"] == 4
        assert "Total: 4 records" in body["summary"]
        assert buffer.pending_count == 0
        assert log_sink.rows

    def test_run_sync_failure_is_reported_in_body(self, client: TestClient) -> None:
        response = client.post("/sync/broken")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ERROR"
        assert body["error_message"] == "upstream down"
        assert body["summary"] == "Shop synchronization failed: upstream down"

    def test_unknown_domain_is_404(self, client: TestClient) -> None:
        response = client.post("/sync/ads")
        assert response.status_code == 404
        assert "Allowed domains" in response.json()["detail"]

    def test_last_sync(self, client: TestClient) -> None:
        assert client.get("/sync/shop/last-sync").json()["last_sync"] is None

        client.post("/sync/shop")
        body = client.get("/sync/shop/last-sync").json()

        assert body["principal"] == "ops@example.com"
        assert body["last_sync"].startswith("2026-03-01T12:00:00")


# ---------------------------------------------------------------------------
# /logs
# ---------------------------------------------------------------------------


class TestLogEndpoints:
    def test_buffer_and_flush(self, client: TestClient, buffer: LogBuffer) -> None:
        buffer.info("TEST", "hello")

        status = client.get("/logs/buffer").json()
        assert status["state"] == "ACCUMULATING"
        assert status["pending_entries"] == 1
        assert status["entries"][0]["message"] == "hello"

        flushed = client.post("/logs/flush").json()
        assert flushed == {"flushed": True, "pending_entries": 0}

    def test_flush_failure_keeps_entries(self, client: TestClient, buffer: LogBuffer, log_sink: FakeLogSink) -> None:
        buffer.info("TEST", "hello")
        log_sink.fail_append = True

        assert client.post("/logs/flush").json() == {"flushed": False, "pending_entries": 1}

    def test_cleanup(self, client: TestClient) -> None:
        response = client.post("/logs/cleanup", params={"retention_days": 30})
        assert response.status_code == 200
        assert response.json() == {"retention_days": 30, "deleted_entries": 0}

    @pytest.mark.parametrize("retention_days", [0, -1])
    def test_cleanup_rejects_non_positive_retention(self, client: TestClient, retention_days: int) -> None:
        response = client.post("/logs/cleanup", params={"retention_days": retention_days})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# /sync/tables
# ---------------------------------------------------------------------------


class TestTableEndpoint:
    def test_written_table_is_readable(self, client: TestClient) -> None:
        client.post("/sync/shop")

        body = client.get("/sync/tables/SHOP_ITEMS").json()

        assert body["header"] == ["ID"]
        assert body["rows"] == [["1-a"], ["2-a"]]
        assert body["has_error"] is False

    def test_error_marker_is_flagged(self, client: TestClient) -> None:
        client.post("/sync/broken")

        body = client.get("/sync/tables/BROKEN_ACCOUNTS").json()

        assert body["has_error"] is True
        assert body["rows"][0][0] == "ERROR"

    def test_unknown_table_is_404(self, client: TestClient) -> None:
        assert client.get("/sync/tables/NOPE").status_code == 404
