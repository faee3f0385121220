"""rate, idempotency, import run and provenance tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "rate_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("destination", sa.String(length=8), nullable=False),
        sa.Column("partner", sa.String(length=8), server_default="", nullable=False),
        sa.Column("product_key", sa.String(length=32), server_default="", nullable=False),
        sa.Column("rule_kind", sa.String(length=32), nullable=False),
        sa.Column("value", sa.String(length=32), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column(
            "source_tier",
            _enum("official", "secondary", "derived", name="sourcetier"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("revision", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_rate_record")),
        sa.UniqueConstraint(
            "destination",
            "partner",
            "product_key",
            "rule_kind",
            "effective_from",
            name="uq_rate_record_natural_key",
        ),
    )
    op.create_index(
        "ix_rate_record_lookup",
        "rate_record",
        ["destination", "product_key", "effective_from"],
    )

    op.create_table(
        "idempotency_record",
        sa.Column("scope", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            _enum("pending", "processing", "completed", "failed", name="idempotencystatus"),
            nullable=False,
        ),
        sa.Column(
            "response",
            sa.JSON(none_as_null=True).with_variant(
                postgresql.JSONB(none_as_null=True), "postgresql"
            ),
            nullable=True,
        ),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("scope", "key", name=op.f("pk_idempotency_record")),
    )
    op.create_index(
        "ix_idempotency_record_status_locked_at",
        "idempotency_record",
        ["status", "locked_at"],
    )

    op.create_table(
        "import_run",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("job", sa.String(length=128), nullable=False),
        sa.Column("version", sa.String(length=64), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("params", sa.Text(), nullable=True),
        sa.Column(
            "status",
            _enum("running", "succeeded", "failed", name="importstatus"),
            nullable=False,
        ),
        sa.Column("inserted", sa.Integer(), nullable=False),
        sa.Column("updated", sa.Integer(), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=True),
        sa.Column("file_bytes", sa.Integer(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_import_run")),
    )
    op.create_index(
        "ix_import_run_status_updated_at",
        "import_run",
        ["status", "updated_at"],
    )

    op.create_table(
        "provenance_entry",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("import_run_id", sa.Uuid(), nullable=False),
        sa.Column("resource_type", _enum("rate", name="resourcetype"), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("source_ref", sa.String(length=255), nullable=True),
        sa.Column("source_hash", sa.String(length=64), nullable=True),
        sa.Column("row_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["import_run_id"],
            ["import_run.id"],
            name=op.f("fk_provenance_entry_import_run_id_import_run"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["resource_id"],
            ["rate_record.id"],
            name=op.f("fk_provenance_entry_resource_id_rate_record"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_provenance_entry")),
    )
    op.create_index(
        "ix_provenance_entry_run_resource",
        "provenance_entry",
        ["import_run_id", "resource_id"],
    )
    op.create_index("ix_provenance_entry_resource", "provenance_entry", ["resource_id"])


def downgrade() -> None:
    op.drop_index("ix_provenance_entry_resource", table_name="provenance_entry")
    op.drop_index("ix_provenance_entry_run_resource", table_name="provenance_entry")
    op.drop_table("provenance_entry")
    op.drop_index("ix_import_run_status_updated_at", table_name="import_run")
    op.drop_table("import_run")
    op.drop_index("ix_idempotency_record_status_locked_at", table_name="idempotency_record")
    op.drop_table("idempotency_record")
    op.drop_index("ix_rate_record_lookup", table_name="rate_record")
    op.drop_table("rate_record")
