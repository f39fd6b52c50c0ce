"""
app/repositories/sync_state_repository.py

Principal-scoped durable key/value state (last-sync markers and the like).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from db.models.sync_state_value import SyncStateValue
from db.session import SessionFactory, session_scope

_UPSERT_CONSTRAINT = "uq_sync_state_values_principal_key"


class SQLStateStore:
    def __init__(self, *, session_factory: SessionFactory, principal: str) -> None:
        self._session_factory = session_factory
        self._principal = principal

    @property
    def principal(self) -> str:
        return self._principal

    def get_value(self, key: str) -> str | None:
        with session_scope(self._session_factory) as session:
            return session.scalar(
                select(SyncStateValue.value).where(
                    SyncStateValue.principal == self._principal,
                    SyncStateValue.key == key,
                )
            )

    def set_value(self, key: str, value: str) -> None:
        stmt = (
            insert(SyncStateValue)
            .values(principal=self._principal, key=key, value=value)
            .on_conflict_do_update(
                constraint=_UPSERT_CONSTRAINT,
                set_={"value": value, "updated_at": datetime.now(timezone.utc)},
            )
        )
        with session_scope(self._session_factory) as session:
            session.execute(stmt)
