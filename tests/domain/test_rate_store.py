from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ratebook.domain.errors import InvalidRateError
from ratebook.domain.hashing import row_hash
from ratebook.domain.model import ResourceType, SourceTier
from ratebook.domain.rate_store import SOURCE_REF_MAX_LENGTH, upsert_rates
from tests.helpers.rates import (
    FakeProvenanceRepository,
    FakeRateRepository,
    FakeUnitOfWork,
    make_rate,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def _factory(uow: FakeUnitOfWork):  # noqa: ANN202
    return lambda: uow


def test_upsert_counts_inserts_and_noops() -> None:
    uow = FakeUnitOfWork()

    first = upsert_rates([make_rate()], unit_of_work_factory=_factory(uow), clock=lambda: NOW)
    second = upsert_rates([make_rate()], unit_of_work_factory=_factory(uow), clock=lambda: NOW)

    assert (first.inserted, first.updated) == (1, 0)
    assert (second.inserted, second.updated) == (0, 0)
    assert uow.commits == 2


def test_rule_kind_case_does_not_create_a_second_row() -> None:
    rates = FakeRateRepository()
    uow = FakeUnitOfWork(rates=rates)

    upsert_rates(
        [make_rate(rule_kind="MFN")], unit_of_work_factory=_factory(uow), clock=lambda: NOW
    )
    result = upsert_rates(
        [make_rate(rule_kind="mfn")], unit_of_work_factory=_factory(uow), clock=lambda: NOW
    )

    assert (result.inserted, result.updated) == (0, 0)
    assert [key[3] for key in rates.rows] == ["mfn"]


def test_upsert_splits_into_batches() -> None:
    uow = FakeUnitOfWork()
    rows = (make_rate(product_key=f"8504{index:02d}") for index in range(5))

    result = upsert_rates(rows, unit_of_work_factory=_factory(uow), batch_size=2)

    assert result.batches == 3
    assert result.inserted == 5
    rates = uow.repositories.rates
    assert isinstance(rates, FakeRateRepository)
    assert [len(call) for call in rates.calls] == [2, 2, 1]


def test_upsert_keeps_the_last_duplicate_in_a_batch() -> None:
    uow = FakeUnitOfWork()

    result = upsert_rates(
        [make_rate("1.000"), make_rate("2.000")], unit_of_work_factory=_factory(uow)
    )

    assert result.inserted == 1
    rates = uow.repositories.rates
    assert isinstance(rates, FakeRateRepository)
    (stored,) = rates.rows.values()
    assert stored.record.value == Decimal("2.000")


def test_dry_run_writes_nothing_and_counts_every_row() -> None:
    uow = FakeUnitOfWork()

    result = upsert_rates(
        [make_rate("1.000"), make_rate("1.000"), make_rate(product_key="010121")],
        unit_of_work_factory=_factory(uow),
        dry_run=True,
    )

    assert result.dry_run is True
    assert result.inserted == 3
    assert result.updated == 0
    assert uow.commits == 0
    rates = uow.repositories.rates
    assert isinstance(rates, FakeRateRepository)
    assert rates.calls == []


def test_dry_run_still_validates() -> None:
    with pytest.raises(InvalidRateError):
        upsert_rates(
            [make_rate("NaN")],
            unit_of_work_factory=_factory(FakeUnitOfWork()),
            dry_run=True,
        )


def test_invalid_batch_size() -> None:
    with pytest.raises(ValueError, match="batch_size"):
        upsert_rates([], unit_of_work_factory=_factory(FakeUnitOfWork()), batch_size=0)


def test_official_rows_are_not_downgraded() -> None:
    uow = FakeUnitOfWork()
    factory = _factory(uow)
    upsert_rates([make_rate("3.700", tier=SourceTier.OFFICIAL)], unit_of_work_factory=factory)

    result = upsert_rates(
        [make_rate("5.000", tier=SourceTier.SECONDARY)], unit_of_work_factory=factory
    )

    assert result.updated == 0
    rates = uow.repositories.rates
    assert isinstance(rates, FakeRateRepository)
    (stored,) = rates.rows.values()
    assert stored.record.value == Decimal("3.700")


def test_provenance_is_written_for_changed_rows_only() -> None:
    uow = FakeUnitOfWork()
    run_id = uuid.uuid4()
    long_ref = "https://example.gov/" + "x" * 400

    first = upsert_rates(
        [make_rate()],
        unit_of_work_factory=_factory(uow),
        import_run_id=run_id,
        source_ref_for=lambda _record: long_ref,
        source_hash="f" * 64,
    )
    second = upsert_rates(
        [make_rate()], unit_of_work_factory=_factory(uow), import_run_id=run_id
    )

    assert first.provenance_written == 1
    assert second.provenance_written == 0
    provenance = uow.repositories.provenance
    assert isinstance(provenance, FakeProvenanceRepository)
    (entry,) = provenance.entries
    assert entry.import_run_id == run_id
    assert entry.resource_type is ResourceType.RATE
    assert entry.row_hash == row_hash(make_rate())
    assert entry.source_hash == "f" * 64
    assert entry.source_ref is not None
    assert len(entry.source_ref) == SOURCE_REF_MAX_LENGTH


def test_provenance_failure_keeps_data_rows(caplog: pytest.LogCaptureFixture) -> None:
    uow = FakeUnitOfWork(provenance=FakeProvenanceRepository(fail=True))

    result = upsert_rates(
        [make_rate(), make_rate(product_key="010121")],
        unit_of_work_factory=_factory(uow),
        import_run_id=uuid.uuid4(),
    )

    assert result.inserted == 2
    assert result.provenance_written == 0
    assert result.provenance_failed == 2
    assert uow.commits == 1
    assert "Provenance write failed" in caplog.text


def test_no_provenance_without_import_run() -> None:
    uow = FakeUnitOfWork()

    upsert_rates([make_rate()], unit_of_work_factory=_factory(uow))

    assert uow.savepoints == 0
