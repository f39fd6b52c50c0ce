"""
app/domain/sync.py

Domain models for fan-out synchronization runs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any


def whole_seconds(duration_ms: int) -> int:
    """Milliseconds to whole seconds, halves rounded up."""
    return int(duration_ms / 1000 + 0.5)


class SyncStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class PrimaryEntity:
    """
    Top-level resource returned by the primary listing call (e.g. an account).
    """

    entity_id: str
    display_name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DependentEntity:
    """
    Resource fetched per primary entity. `primary_id` is a weak back-reference.
    """

    entity_id: str
    primary_id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PrimaryRef:
    """
    Display fields of the primary entity that owns a dependent entity.
    """

    entity_id: str
    display_name: str
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AnnotatedDependent:
    """
    Dependent entity paired with its resolved primary-entity reference.
    """

    entity: DependentEntity
    primary: PrimaryRef


RowBuilder = Callable[[Any, datetime], Sequence[Any]]


@dataclass(frozen=True)
class TableSpec:
    """
    Output table layout. `to_row` receives the item and the sync timestamp.
    """

    table_name: str
    header: tuple[str, ...]
    to_row: RowBuilder


@dataclass(frozen=True)
class PrimaryListing:
    category: str
    list_entities: Callable[[], Sequence[PrimaryEntity]]
    table: TableSpec


@dataclass(frozen=True)
class DependentListing:
    category: str
    list_entities: Callable[[PrimaryEntity], Sequence[DependentEntity]]
    table: TableSpec


@dataclass(frozen=True)
class DomainSyncConfig:
    """
    Immutable description of one logical sync domain.

    - primary: the listing whose failure aborts the run
    - dependents: listings fanned out per primary entity, failures isolated
    - primary_hook: optional best-effort call per primary entity, failures ignored
    - quota_hint: appended to the surfaced message on rate-limit failures
    - primary_display_fields: primary attributes copied onto each dependent
    """

    name: str
    label: str
    module: str
    primary: PrimaryListing
    dependents: tuple[DependentListing, ...] = ()
    primary_hook: Callable[[PrimaryEntity], Any] | None = None
    quota_hint: str | None = None
    primary_display_fields: tuple[str, ...] = ()

    @property
    def categories(self) -> list[str]:
        return [self.primary.category, *(listing.category for listing in self.dependents)]

    def empty_counts(self) -> dict[str, int]:
        return {category: 0 for category in self.categories}


@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of one orchestrator run. Owned by the caller.
    """

    domain: str
    status: SyncStatus
    record_counts: Mapping[str, int] = field(default_factory=dict)
    total_duration_ms: int = 0
    error_message: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "record_counts", MappingProxyType(dict(self.record_counts)))

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())

    @property
    def succeeded(self) -> bool:
        return self.status is SyncStatus.SUCCESS

    def render_summary(self, label: str) -> str:
        if not self.succeeded:
            return f"{label} synchronization failed: {self.error_message or 'unknown error'}"
        lines = [f"{label} synchronization successful."]
        lines.extend(
            f"{category.replace('_', ' ').capitalize()}: {count}"
            for category, count in self.record_counts.items()
        )
        lines.append(f"Total: {self.total_records} records")
        lines.append(f"Duration: {whole_seconds(self.total_duration_ms)}s")
        return "\n".join(lines)
