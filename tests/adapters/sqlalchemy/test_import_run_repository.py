from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from ratebook.domain.import_runs import (
    finish_import_run,
    start_import_run,
    sweep_stale_import_runs,
)
from ratebook.domain.model import ImportStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from ratebook.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork

START = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def test_import_run_round_trip(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> None:
    run = start_import_run(
        unit_of_work_factory=sqlite_unit_of_work,
        source="json-feed",
        job="import-json",
        source_url="https://rates.example.com/feed.json",
        params={"batch_size": 100},
        clock=lambda: START,
    )

    finish_import_run(
        run.id,
        unit_of_work_factory=sqlite_unit_of_work,
        status=ImportStatus.SUCCEEDED,
        inserted=10,
        updated=2,
        clock=lambda: START + timedelta(minutes=1),
    )

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.import_runs.get(run.id)
        assert stored is not None
        assert stored.status is ImportStatus.SUCCEEDED
        assert (stored.inserted, stored.updated) == (10, 2)
        assert stored.params == '{"batch_size":100}'
        assert stored.started_at == START
        assert stored.finished_at == START + timedelta(minutes=1)


def test_sweep_marks_stale_runs_failed(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    runs = [
        start_import_run(
            unit_of_work_factory=sqlite_unit_of_work,
            source="json-feed",
            job=f"job-{index}",
            clock=lambda index=index: START + timedelta(minutes=index),
        )
        for index in range(3)
    ]
    finished = start_import_run(
        unit_of_work_factory=sqlite_unit_of_work,
        source="json-feed",
        job="done",
        clock=lambda: START,
    )
    finish_import_run(
        finished.id,
        unit_of_work_factory=sqlite_unit_of_work,
        status=ImportStatus.SUCCEEDED,
        clock=lambda: START,
    )

    limited = sweep_stale_import_runs(
        unit_of_work_factory=sqlite_unit_of_work,
        stale_after=timedelta(minutes=30),
        limit=2,
        clock=lambda: START + timedelta(hours=1),
    )
    rest = sweep_stale_import_runs(
        unit_of_work_factory=sqlite_unit_of_work,
        stale_after=timedelta(minutes=30),
        clock=lambda: START + timedelta(hours=1),
    )

    assert set(limited.run_ids) == {runs[0].id, runs[1].id}
    assert rest.run_ids == (runs[2].id,)
    with sqlite_unit_of_work() as uow:
        for run in runs:
            stored = uow.repositories.import_runs.get(run.id)
            assert stored is not None
            assert stored.status is ImportStatus.FAILED
            assert stored.error == "stale heartbeat > 30m"
        done = uow.repositories.import_runs.get(finished.id)
        assert done is not None
        assert done.status is ImportStatus.SUCCEEDED
