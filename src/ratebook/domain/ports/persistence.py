"""Ports for persisting rates, audit records and idempotency state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ratebook.domain.model import ImportRun

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, datetime
    from uuid import UUID

    from ratebook.domain.model import IdempotencyRecord, JsonValue, ProvenanceEntry, RateRecord


@dataclass(frozen=True, slots=True)
class StoredRate:
    id: UUID
    record: RateRecord


@dataclass(frozen=True, slots=True)
class WrittenRate:
    """A row the store actually changed, with whether the change was an insert."""

    id: UUID
    record: RateRecord
    inserted: bool


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class RateRepository(Protocol):
    """Persistence contract for the effective-dated rate table."""

    def upsert_many(self, records: Sequence[RateRecord], *, now: datetime) -> list[WrittenRate]:
        """Insert or conditionally update ``records`` in one statement.

        Only rows that were inserted, or updated because a meaningful field changed and
        the source tier allowed it, are returned.
        """
        ...

    def get(
        self,
        *,
        destination: str,
        partner: str,
        product_key: str | None,
        rule_kind: str,
        effective_from: date,
    ) -> StoredRate | None: ...

    def find_active(
        self,
        *,
        destination: str,
        product_key: str | None,
        on: date,
        partner: str | None = None,
        rule_kind: str | None = None,
    ) -> StoredRate | None: ...


@runtime_checkable
class ProvenanceRepository(Protocol):
    def add_many(self, entries: Sequence[ProvenanceEntry]) -> None: ...

    def for_resource(self, resource_id: UUID) -> list[ProvenanceEntry]: ...


@runtime_checkable
class ImportRunRepository(Repository[ImportRun], Protocol):
    def get(self, run_id: UUID) -> ImportRun | None: ...

    def fail_stale(
        self,
        *,
        cutoff: datetime,
        now: datetime,
        error: str,
        limit: int | None = None,
    ) -> list[UUID]:
        """Mark ``running`` runs last touched before ``cutoff`` as failed."""
        ...


@runtime_checkable
class IdempotencyRepository(Protocol):
    """Single-statement operations on the idempotency table."""

    def insert_pending(self, *, scope: str, key: str, request_hash: str, now: datetime) -> None:
        """Create a ``pending`` row unless one already exists for ``(scope, key)``."""
        ...

    def claim(self, *, scope: str, key: str, now: datetime) -> str | None:
        """Move an unlocked ``pending`` row to ``processing``.

        Returns the stored request hash when this caller won the claim, else ``None``.
        """
        ...

    def get(self, *, scope: str, key: str) -> IdempotencyRecord | None: ...

    def complete(self, *, scope: str, key: str, response: JsonValue, now: datetime) -> None: ...

    def fail(self, *, scope: str, key: str, response: JsonValue, now: datetime) -> None: ...

    def replace_response(
        self, *, scope: str, key: str, response: JsonValue, now: datetime
    ) -> None: ...

    def fail_stale(self, *, cutoff: datetime, now: datetime) -> int:
        """Force ``processing`` rows locked before ``cutoff`` to ``failed``."""
        ...
