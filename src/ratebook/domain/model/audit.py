"""Audit records: import runs and the provenance they leave behind."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .enums import ImportStatus, ResourceType


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False)
class ImportRun:
    """One execution of an importer, from start to its terminal status."""

    source: str
    job: str
    version: str | None = None
    source_url: str | None = None
    params: str | None = None
    status: ImportStatus = ImportStatus.RUNNING
    inserted: int = 0
    updated: int = 0
    file_hash: str | None = None
    file_bytes: int | None = None
    error: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    started_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.status is not ImportStatus.RUNNING


@dataclass(eq=False, kw_only=True)
class ProvenanceEntry:
    """Immutable audit link between a written row and the run that wrote it."""

    import_run_id: uuid.UUID
    resource_id: uuid.UUID
    row_hash: str
    resource_type: ResourceType = ResourceType.RATE
    source_ref: str | None = None
    source_hash: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
