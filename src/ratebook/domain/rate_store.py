"""Batched, provenance-tracked upsert of canonical rate rows.

Write protection lives in the repository's conditional statement: a row whose stored
tier is ``official`` only changes when the incoming row is also ``official``, and
byte-identical re-imports change nothing. This module drives the batches, counts
inserts against updates, and appends provenance for every row that actually changed.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Final

from ratebook.domain.hashing import row_hash
from ratebook.domain.model import ProvenanceEntry, ResourceType, normalize_rate

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from ratebook.domain.model import NaturalKey, RateRecord
    from ratebook.domain.ports import RatebookUnitOfWork, WrittenRate

log = getLogger(__name__)

DEFAULT_BATCH_SIZE: Final[int] = 5000
SOURCE_REF_MAX_LENGTH: Final[int] = 255

type UnitOfWorkFactory = Callable[[], RatebookUnitOfWork]
type SourceRefFor = Callable[[RateRecord], str | None]


@dataclass(slots=True)
class UpsertResult:
    """Totals across every batch of an upsert call."""

    inserted: int = 0
    updated: int = 0
    dry_run: bool = False
    batches: int = 0
    provenance_written: int = 0
    provenance_failed: int = 0


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def upsert_rates(  # noqa: PLR0913
    rows: Iterable[RateRecord],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
    import_run_id: UUID | None = None,
    source_ref_for: SourceRefFor | None = None,
    source_hash: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> UpsertResult:
    """Upsert ``rows`` batch by batch, each batch in its own transaction.

    ``rows`` may be any iterable, including a generator streaming from a parser. With
    ``dry_run`` every row is still validated and normalised, nothing is written, and each
    batch reports its full length as inserted.
    """

    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    result = UpsertResult(dry_run=dry_run)
    for chunk in batched(rows, batch_size):
        batch = _prepare_batch(chunk)
        result.batches += 1

        if dry_run:
            result.inserted += len(chunk)
            log.info("Dry run batch %s: %s rows validated", result.batches, len(chunk))
            continue

        with unit_of_work_factory() as uow:
            written = uow.repositories.rates.upsert_many(batch, now=clock())
            inserted = sum(1 for row in written if row.inserted)
            updated = len(written) - inserted
            if import_run_id is not None and written:
                ok, failed = _record_provenance(
                    uow,
                    written,
                    import_run_id=import_run_id,
                    source_ref_for=source_ref_for,
                    source_hash=source_hash,
                )
                result.provenance_written += ok
                result.provenance_failed += failed
            uow.commit()

        result.inserted += inserted
        result.updated += updated
        log.info(
            "Upserted batch %s: rows=%s, inserted=%s, updated=%s, unchanged=%s",
            result.batches,
            len(batch),
            inserted,
            updated,
            len(batch) - len(written),
        )

    return result


def _prepare_batch(chunk: Iterable[RateRecord]) -> list[RateRecord]:
    # One statement cannot touch the same key twice, so the last row for a key wins.
    by_key: dict[NaturalKey, RateRecord] = {}
    for row in chunk:
        normalized = normalize_rate(row)
        if normalized.natural_key in by_key:
            log.debug(
                "Duplicate rate key in batch, keeping the later row: %s", normalized.natural_key
            )
        by_key[normalized.natural_key] = normalized
    return list(by_key.values())


def _record_provenance(
    uow: RatebookUnitOfWork,
    written: list[WrittenRate],
    *,
    import_run_id: UUID,
    source_ref_for: SourceRefFor | None,
    source_hash: str | None,
) -> tuple[int, int]:
    """Append provenance inside a savepoint; a failure here never undoes the data write."""

    try:
        entries = [
            ProvenanceEntry(
                import_run_id=import_run_id,
                resource_type=ResourceType.RATE,
                resource_id=row.id,
                row_hash=row_hash(row.record),
                source_ref=_source_ref(row.record, source_ref_for),
                source_hash=source_hash,
            )
            for row in written
        ]
        with uow.savepoint():
            uow.repositories.provenance.add_many(entries)
    except Exception:  # noqa: BLE001
        log.warning(
            "Provenance write failed for %s rows of import run %s; data rows kept",
            len(written),
            import_run_id,
            exc_info=True,
        )
        return 0, len(written)
    return len(entries), 0


def _source_ref(record: RateRecord, source_ref_for: SourceRefFor | None) -> str | None:
    if source_ref_for is None:
        return None
    ref = source_ref_for(record)
    if ref is None:
        return None
    return ref[:SOURCE_REF_MAX_LENGTH]
