"""SQLAlchemy mapping metadata for the ratebook domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.dialects import postgresql

from ratebook.domain.model import (
    IdempotencyStatus,
    ImportRun,
    ImportStatus,
    ProvenanceEntry,
    ResourceType,
    SourceTier,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
JSONColumnType = JSON(none_as_null=True).with_variant(
    postgresql.JSONB(none_as_null=True), "postgresql"
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _value_enum(enum_cls: type[StrEnum]) -> Enum:
    """Store enum values (``"official"``) rather than member names."""

    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

NATURAL_KEY_COLUMNS = ("destination", "partner", "product_key", "rule_kind", "effective_from")

# Rates -----------------------------------------------------------------------

# product_key holds "" for program-level rows so the natural key stays a plain
# unique constraint on every backend (NULLs never collide in a unique index).
rate_record_table = Table(
    "rate_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("destination", String(8), nullable=False),
    Column("partner", String(8), nullable=False, server_default=""),
    Column("product_key", String(32), nullable=False, server_default=""),
    Column("rule_kind", String(32), nullable=False),
    Column("value", String(32), nullable=False),
    Column("currency", String(3), nullable=True),
    Column("effective_from", Date, nullable=False),
    Column("effective_to", Date, nullable=True),
    Column("source_tier", _value_enum(SourceTier), nullable=False),
    Column("notes", Text, nullable=True),
    Column("revision", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint(*NATURAL_KEY_COLUMNS, name="uq_rate_record_natural_key"),
    Index("ix_rate_record_lookup", "destination", "product_key", "effective_from"),
)

# Idempotency -----------------------------------------------------------------

idempotency_record_table = Table(
    "idempotency_record",
    mapper_registry.metadata,
    Column("scope", String(255), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("request_hash", String(64), nullable=False),
    Column("status", _value_enum(IdempotencyStatus), nullable=False),
    Column("response", JSONColumnType, nullable=True),
    Column("locked_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_idempotency_record_status_locked_at", "status", "locked_at"),
)

# Audit -----------------------------------------------------------------------

import_run_table = Table(
    "import_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("source", String(64), nullable=False),
    Column("job", String(128), nullable=False),
    Column("version", String(64), nullable=True),
    Column("source_url", Text, nullable=True),
    Column("params", Text, nullable=True),
    Column("status", _value_enum(ImportStatus), nullable=False),
    Column("inserted", Integer, nullable=False, default=0),
    Column("updated", Integer, nullable=False, default=0),
    Column("file_hash", String(64), nullable=True),
    Column("file_bytes", Integer, nullable=True),
    Column("error", Text, nullable=True),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("finished_at", UTCDateTime(), nullable=True),
    Index("ix_import_run_status_updated_at", "status", "updated_at"),
)

provenance_entry_table = Table(
    "provenance_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "import_run_id",
        UUIDColumnType,
        ForeignKey("import_run.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("resource_type", _value_enum(ResourceType), nullable=False),
    Column(
        "resource_id",
        UUIDColumnType,
        ForeignKey("rate_record.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("source_ref", String(255), nullable=True),
    Column("source_hash", String(64), nullable=True),
    Column("row_hash", String(64), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_provenance_entry_run_resource", "import_run_id", "resource_id"),
    Index("ix_provenance_entry_resource", "resource_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Map audit dataclasses imperatively; rates and idempotency rows stay Core-only."""

    mapper_registry.map_imperatively(ImportRun, import_run_table)
    mapper_registry.map_imperatively(ProvenanceEntry, provenance_entry_table)
    orm.configure_mappers()
    log.debug("SQLAlchemy mappers configured")
    return mapper_registry

