"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite

from ratebook.adapters.sqlalchemy.mappings import (
    NATURAL_KEY_COLUMNS,
    idempotency_record_table,
    import_run_table,
    rate_record_table,
)
from ratebook.domain.model import (
    IdempotencyRecord,
    IdempotencyStatus,
    ImportRun,
    ImportStatus,
    ProvenanceEntry,
    RateRecord,
    SourceTier,
    format_value,
)
from ratebook.domain.ports import StoredRate, WrittenRate

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import date, datetime

    from sqlalchemy import Row, Table
    from sqlalchemy.orm import Session

    from ratebook.domain.model import JsonValue, NaturalKey

_FIELDS_THAT_MATTER = ("value", "effective_to", "notes", "currency", "source_tier")


def _dialect_insert(session: Session) -> Callable[[Table], Any]:
    """Return the ``insert`` construct that supports ``ON CONFLICT`` for the bound backend."""

    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Conditional upserts are not implemented for the {name} dialect")


def _record_from_row(row: Row[Any]) -> RateRecord:
    return RateRecord(
        destination=row.destination,
        partner=row.partner,
        product_key=row.product_key or None,
        rule_kind=row.rule_kind,
        value=Decimal(row.value),
        currency=row.currency,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        source_tier=SourceTier(row.source_tier),
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyRateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_many(self, records: Sequence[RateRecord], *, now: datetime) -> list[WrittenRate]:
        if not records:
            return []

        table = rate_record_table
        stmt = _dialect_insert(self.session)(table)
        excluded = stmt.excluded

        # An existing official row only yields to another official row.
        tier_allows = or_(
            table.c.source_tier == excluded.source_tier,
            table.c.source_tier != SourceTier.OFFICIAL,
        )
        something_changed = or_(
            *(table.c[name].is_distinct_from(excluded[name]) for name in _FIELDS_THAT_MATTER)
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c[name] for name in NATURAL_KEY_COLUMNS],
            set_={
                **{name: excluded[name] for name in _FIELDS_THAT_MATTER},
                "updated_at": excluded.updated_at,
                "revision": table.c.revision + 1,
            },
            where=and_(tier_allows, something_changed),
        ).returning(
            table.c.id,
            table.c.revision,
            *(table.c[name] for name in NATURAL_KEY_COLUMNS),
        )

        by_key: dict[NaturalKey, RateRecord] = {record.natural_key: record for record in records}
        params = [self._params(record, now) for record in records]
        written: list[WrittenRate] = []
        for row in self.session.execute(stmt, params):
            key: NaturalKey = (
                row.destination,
                row.partner,
                row.product_key or None,
                row.rule_kind,
                row.effective_from,
            )
            written.append(WrittenRate(id=row.id, record=by_key[key], inserted=row.revision == 0))
        return written

    def get(
        self,
        *,
        destination: str,
        partner: str,
        product_key: str | None,
        rule_kind: str,
        effective_from: date,
    ) -> StoredRate | None:
        table = rate_record_table
        stmt = select(table).where(
            table.c.destination == destination,
            table.c.partner == partner,
            table.c.product_key == (product_key or ""),
            table.c.rule_kind == rule_kind,
            table.c.effective_from == effective_from,
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return StoredRate(id=row.id, record=_record_from_row(row))

    def find_active(
        self,
        *,
        destination: str,
        product_key: str | None,
        on: date,
        partner: str | None = None,
        rule_kind: str | None = None,
    ) -> StoredRate | None:
        table = rate_record_table
        stmt = select(table).where(
            table.c.destination == destination,
            table.c.product_key == (product_key or ""),
            table.c.effective_from <= on,
            or_(table.c.effective_to.is_(None), table.c.effective_to > on),
        )
        if rule_kind is not None:
            stmt = stmt.where(table.c.rule_kind == rule_kind)

        if partner:
            stmt = stmt.where(table.c.partner.in_((partner, ""))).order_by(
                case((table.c.partner == partner, 0), else_=1)
            )
        else:
            stmt = stmt.where(table.c.partner == "")

        stmt = stmt.order_by(
            case(
                (table.c.source_tier == SourceTier.OFFICIAL, 0),
                (table.c.source_tier == SourceTier.SECONDARY, 1),
                else_=2,
            ),
            table.c.effective_from.desc(),
        ).limit(1)

        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return StoredRate(id=row.id, record=_record_from_row(row))

    @staticmethod
    def _params(record: RateRecord, now: datetime) -> dict[str, object]:
        return {
            "id": uuid.uuid4(),
            "destination": record.destination,
            "partner": record.partner,
            "product_key": record.product_key or "",
            "rule_kind": record.rule_kind,
            "value": format_value(record.value),
            "currency": record.currency,
            "effective_from": record.effective_from,
            "effective_to": record.effective_to,
            "source_tier": record.source_tier,
            "notes": record.notes,
            "revision": 0,
            "created_at": now,
            "updated_at": now,
        }


class SqlAlchemyProvenanceRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_many(self, entries: Sequence[ProvenanceEntry]) -> None:
        self.session.add_all(entries)
        self.session.flush()

    def for_resource(self, resource_id: uuid.UUID) -> list[ProvenanceEntry]:
        stmt = (
            select(ProvenanceEntry)
            .where(ProvenanceEntry.resource_id == resource_id)  # type: ignore[arg-type]
            .order_by(ProvenanceEntry.created_at)  # type: ignore[arg-type]
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyImportRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ImportRun) -> None:
        self.session.add(entity)

    def get(self, run_id: uuid.UUID) -> ImportRun | None:
        return self.session.get(ImportRun, run_id)

    def fail_stale(
        self,
        *,
        cutoff: datetime,
        now: datetime,
        error: str,
        limit: int | None = None,
    ) -> list[uuid.UUID]:
        table = import_run_table
        stale = and_(table.c.status == ImportStatus.RUNNING, table.c.updated_at < cutoff)
        if limit is not None:
            ids = list(
                self.session.execute(
                    select(table.c.id).where(stale).order_by(table.c.updated_at).limit(limit)
                ).scalars()
            )
            if not ids:
                return []
            stale = and_(stale, table.c.id.in_(ids))

        stmt = (
            update(table)
            .where(stale)
            .values(status=ImportStatus.FAILED, error=error, finished_at=now, updated_at=now)
            .returning(table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyIdempotencyRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def insert_pending(self, *, scope: str, key: str, request_hash: str, now: datetime) -> None:
        table = idempotency_record_table
        stmt = (
            _dialect_insert(self.session)(table)
            .values(
                scope=scope,
                key=key,
                request_hash=request_hash,
                status=IdempotencyStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=[table.c.scope, table.c.key])
        )
        self.session.execute(stmt)

    def claim(self, *, scope: str, key: str, now: datetime) -> str | None:
        table = idempotency_record_table
        stmt = (
            update(table)
            .where(
                table.c.scope == scope,
                table.c.key == key,
                table.c.status == IdempotencyStatus.PENDING,
                table.c.locked_at.is_(None),
            )
            .values(status=IdempotencyStatus.PROCESSING, locked_at=now, updated_at=now)
            .returning(table.c.request_hash)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, *, scope: str, key: str) -> IdempotencyRecord | None:
        table = idempotency_record_table
        row = self.session.execute(
            select(table).where(table.c.scope == scope, table.c.key == key)
        ).one_or_none()
        if row is None:
            return None
        return IdempotencyRecord(
            scope=row.scope,
            key=row.key,
            request_hash=row.request_hash,
            status=IdempotencyStatus(row.status),
            response=row.response,
            locked_at=row.locked_at,
            updated_at=row.updated_at,
        )

    def complete(self, *, scope: str, key: str, response: JsonValue, now: datetime) -> None:
        self._finish(scope, key, IdempotencyStatus.COMPLETED, response, now)

    def fail(self, *, scope: str, key: str, response: JsonValue, now: datetime) -> None:
        self._finish(scope, key, IdempotencyStatus.FAILED, response, now)

    def replace_response(
        self, *, scope: str, key: str, response: JsonValue, now: datetime
    ) -> None:
        table = idempotency_record_table
        self.session.execute(
            update(table)
            .where(
                table.c.scope == scope,
                table.c.key == key,
                table.c.status == IdempotencyStatus.COMPLETED,
            )
            .values(response=response, updated_at=now)
        )

    def fail_stale(self, *, cutoff: datetime, now: datetime) -> int:
        table = idempotency_record_table
        stmt = (
            update(table)
            .where(
                table.c.status == IdempotencyStatus.PROCESSING,
                table.c.locked_at < cutoff,
            )
            .values(
                status=IdempotencyStatus.FAILED,
                response={"error": "stale lock"},
                locked_at=None,
                updated_at=now,
            )
            .returning(table.c.key)
        )
        return len(self.session.execute(stmt).all())

    def _finish(
        self,
        scope: str,
        key: str,
        status: IdempotencyStatus,
        response: JsonValue,
        now: datetime,
    ) -> None:
        table = idempotency_record_table
        self.session.execute(
            update(table)
            .where(
                table.c.scope == scope,
                table.c.key == key,
                table.c.status == IdempotencyStatus.PROCESSING,
            )
            .values(status=status, response=response, locked_at=None, updated_at=now)
        )
