"""Import run bookkeeping: start, finish and sweep of abandoned runs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from ratebook.domain.hashing import stable_stringify
from ratebook.domain.model import ImportRun, ImportStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from ratebook.domain.ports import RatebookUnitOfWork

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], RatebookUnitOfWork]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True, frozen=True)
class SweepResult:
    swept: int
    cutoff: datetime
    run_ids: tuple[UUID, ...] = ()


def start_import_run(  # noqa: PLR0913
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    source: str,
    job: str,
    version: str | None = None,
    source_url: str | None = None,
    params: Mapping[str, object] | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> ImportRun:
    now = clock()
    run = ImportRun(
        source=source,
        job=job,
        version=version,
        source_url=source_url,
        params=stable_stringify(params) if params else None,
        started_at=now,
        updated_at=now,
    )
    with unit_of_work_factory() as uow:
        uow.repositories.import_runs.add(run)
        uow.commit()
    log.info("Started import run %s (%s/%s)", run.id, source, job)
    return run


def finish_import_run(  # noqa: PLR0913
    run_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    status: ImportStatus,
    inserted: int | None = None,
    updated: int | None = None,
    file_hash: str | None = None,
    file_bytes: int | None = None,
    error: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> ImportRun:
    """Close ``run_id`` with a terminal status; only the given counters are overwritten."""

    if status is ImportStatus.RUNNING:
        raise ValueError("An import run cannot be finished as running")

    now = clock()
    with unit_of_work_factory() as uow:
        run = uow.repositories.import_runs.get(run_id)
        if run is None:
            raise LookupError(f"Import run {run_id} not found")
        run.status = status
        if inserted is not None:
            run.inserted = inserted
        if updated is not None:
            run.updated = updated
        if file_hash is not None:
            run.file_hash = file_hash
        if file_bytes is not None:
            run.file_bytes = file_bytes
        if error is not None:
            run.error = error
        run.finished_at = now
        run.updated_at = now
        uow.commit()

    log.info(
        "Finished import run %s: status=%s, inserted=%s, updated=%s",
        run_id,
        status,
        run.inserted,
        run.updated,
    )
    return run


def sweep_stale_import_runs(
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    stale_after: timedelta,
    limit: int | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> SweepResult:
    """Fail ``running`` import runs whose heartbeat is older than ``stale_after``."""

    now = clock()
    cutoff = now - stale_after
    minutes = int(stale_after.total_seconds() // 60)
    with unit_of_work_factory() as uow:
        run_ids = uow.repositories.import_runs.fail_stale(
            cutoff=cutoff,
            now=now,
            error=f"stale heartbeat > {minutes}m",
            limit=limit if limit and limit > 0 else None,
        )
        uow.commit()
    if run_ids:
        log.info("Marked %s stale import runs as failed (cutoff %s)", len(run_ids), cutoff)
    return SweepResult(swept=len(run_ids), cutoff=cutoff, run_ids=tuple(run_ids))
