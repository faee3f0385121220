"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from ratebook.adapters.json_feed import fetch_observations
from ratebook.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from ratebook.config import get_import_config, get_reconciliation_config, get_trust_config
from ratebook.domain.hashing import request_hash
from ratebook.domain.idempotency import sweep_stale_idempotency
from ratebook.domain.import_runs import (
    SweepResult,
    finish_import_run,
    start_import_run,
    sweep_stale_import_runs,
)
from ratebook.domain.model import ImportStatus, ReconcileMode, SourceTier
from ratebook.domain.rate_lookup import find_active_rate
from ratebook.domain.rate_store import upsert_rates
from ratebook.domain.reconciliation import AgreementPolicy, Reconciler
from ratebook.domain.trust import TrustClassifier

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, timedelta
    from uuid import UUID

    from ratebook.domain.model import Observation
    from ratebook.domain.ports import ObservationFetcher, RatebookUnitOfWork, StoredRate
    from ratebook.domain.rate_store import UpsertResult
    from ratebook.domain.reconciliation import ReconciliationResult

type UnitOfWorkFactory = Callable[[], RatebookUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True)
class ImportReport:
    run_id: UUID | None
    reconciliation: ReconciliationResult
    upsert: UpsertResult

    @property
    def conflicts(self) -> int:
        return len(self.reconciliation.conflicts)


@dataclass(slots=True, frozen=True)
class SweepReport:
    import_runs: SweepResult
    idempotency_keys: int


def _resolve_unit_of_work(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def build_reconciler(*, fallback_tier: SourceTier | str = SourceTier.SECONDARY) -> Reconciler:
    """Reconciler wired with the configured allow-list and tolerances."""

    settings = get_reconciliation_config()
    return Reconciler(
        classifier=TrustClassifier(get_trust_config().authoritative_domains),
        policy=AgreementPolicy(
            absolute=settings.absolute_tolerance,
            relative=settings.relative_tolerance,
            component_absolute=settings.component_absolute_tolerance,
            component_relative=settings.component_relative_tolerance,
        ),
        product_key_width=settings.product_key_width,
        fallback_tier=SourceTier(fallback_tier),
    )


def observations_hash(*sides: Sequence[Observation]) -> str:
    return request_hash([[asdict(observation) for observation in side] for side in sides])


def import_reconciled_rates(  # noqa: PLR0913
    left: Sequence[Observation],
    right: Sequence[Observation],
    *,
    source: str,
    job: str = "reconcile",
    mode: ReconcileMode | str | None = None,
    source_url: str | None = None,
    dry_run: bool = False,
    batch_size: int | None = None,
    reconciler: Reconciler | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ImportReport:
    """Reconcile two observation sets and upsert the decided rows inside an import run.

    Conflicts are reported, never written. A dry run validates and counts without opening
    an import run.
    """

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    effective_reconciler = reconciler or build_reconciler()
    effective_mode = mode or get_reconciliation_config().mode
    effective_batch_size = batch_size or get_import_config().batch_size

    result = effective_reconciler.reconcile(left, right, effective_mode)
    if result.conflicts:
        log.warning("%s keys left unresolved by reconciliation", len(result.conflicts))

    if dry_run:
        upserted = upsert_rates(
            result.decided,
            unit_of_work_factory=effective_uow,
            batch_size=effective_batch_size,
            dry_run=True,
        )
        return ImportReport(run_id=None, reconciliation=result, upsert=upserted)

    source_hash = observations_hash(left, right)
    run = start_import_run(
        unit_of_work_factory=effective_uow,
        source=source,
        job=job,
        source_url=source_url,
        params={
            "mode": str(effective_mode),
            "left": len(left),
            "right": len(right),
            "batch_size": effective_batch_size,
        },
    )
    try:
        upserted = upsert_rates(
            result.decided,
            unit_of_work_factory=effective_uow,
            batch_size=effective_batch_size,
            import_run_id=run.id,
            source_ref_for=result.source_ref_for,
            source_hash=source_hash,
        )
    except Exception as exc:
        finish_import_run(
            run.id,
            unit_of_work_factory=effective_uow,
            status=ImportStatus.FAILED,
            error=str(exc),
        )
        raise

    finish_import_run(
        run.id,
        unit_of_work_factory=effective_uow,
        status=ImportStatus.SUCCEEDED,
        inserted=upserted.inserted,
        updated=upserted.updated,
        file_hash=source_hash,
    )
    log.info(
        "Finished import %s: inserted=%s, updated=%s, conflicts=%s, provenance_failed=%s",
        run.id,
        upserted.inserted,
        upserted.updated,
        len(result.conflicts),
        upserted.provenance_failed,
    )
    return ImportReport(run_id=run.id, reconciliation=result, upsert=upserted)


def reconcile_feeds(  # noqa: PLR0913
    left_url: str,
    right_url: str,
    *,
    mode: ReconcileMode | str | None = None,
    tier: SourceTier | str = SourceTier.SECONDARY,
    dry_run: bool = False,
    batch_size: int | None = None,
    fetcher: ObservationFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ImportReport:
    """Fetch two JSON feeds and import their reconciled rows."""

    fetch = fetcher or fetch_observations
    left = fetch(left_url)
    right = fetch(right_url)
    return import_reconciled_rates(
        left,
        right,
        source="json-feed",
        job="reconcile",
        mode=mode,
        source_url=left_url,
        dry_run=dry_run,
        batch_size=batch_size,
        reconciler=build_reconciler(fallback_tier=tier),
        unit_of_work_factory=unit_of_work_factory,
    )


def import_json_feed(  # noqa: PLR0913
    url: str,
    *,
    tier: SourceTier | str = SourceTier.SECONDARY,
    dry_run: bool = False,
    batch_size: int | None = None,
    fetcher: ObservationFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ImportReport:
    """Import a single feed as-is; rows from an authoritative host are stored as official."""

    fetch = fetcher or fetch_observations
    observations = fetch(url)
    return import_reconciled_rates(
        observations,
        [],
        source="json-feed",
        job="import-json",
        mode=ReconcileMode.ANY,
        source_url=url,
        dry_run=dry_run,
        batch_size=batch_size,
        reconciler=build_reconciler(fallback_tier=tier),
        unit_of_work_factory=unit_of_work_factory,
    )


def sweep_stale(
    *,
    import_stale_after: timedelta | None = None,
    idempotency_stale_after: timedelta | None = None,
    limit: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SweepReport:
    """Fail abandoned import runs and idempotency keys."""

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    settings = get_import_config()
    runs = sweep_stale_import_runs(
        unit_of_work_factory=effective_uow,
        stale_after=import_stale_after or settings.import_stale_after,
        limit=limit,
    )
    keys = sweep_stale_idempotency(
        unit_of_work_factory=effective_uow,
        stale_after=idempotency_stale_after or settings.idempotency_stale_after,
    )
    return SweepReport(import_runs=runs, idempotency_keys=keys)


def lookup_rate(  # noqa: PLR0913
    *,
    destination: str,
    product_key: str | None,
    on: date,
    partner: str | None = None,
    rule_kind: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> StoredRate | None:
    return find_active_rate(
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        destination=destination,
        product_key=product_key,
        on=on,
        partner=partner,
        rule_kind=rule_kind,
    )
