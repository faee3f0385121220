"""SQLAlchemy adapter package for ratebook."""

from __future__ import annotations

from .mappings import (
    idempotency_record_table,
    import_run_table,
    mapper_registry,
    provenance_entry_table,
    rate_record_table,
    start_mappers,
)
from .repositories import (
    SqlAlchemyIdempotencyRepository,
    SqlAlchemyImportRunRepository,
    SqlAlchemyProvenanceRepository,
    SqlAlchemyRateRepository,
)

__all__ = [
    "SqlAlchemyIdempotencyRepository",
    "SqlAlchemyImportRunRepository",
    "SqlAlchemyProvenanceRepository",
    "SqlAlchemyRateRepository",
    "idempotency_record_table",
    "import_run_table",
    "mapper_registry",
    "provenance_entry_table",
    "rate_record_table",
    "start_mappers",
]
