from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from ratebook.domain.errors import InvalidRateError
from ratebook.domain.model import SourceTier, canonical_value, format_value, normalize_rate
from ratebook.domain.reconciliation.normalize import observation_key
from tests.helpers.rates import make_observation, make_rate


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("3.7", "3.700"),
        (3.7, "3.700"),
        (0.1, "0.100"),
        (5, "5.000"),
        ("2.0005", "2.001"),
        ("-0", "0.000"),
        ("-0.0001", "0.000"),
        (Decimal("12.34567"), "12.346"),
    ],
)
def test_canonical_value(raw: Decimal | str | float, expected: str) -> None:
    assert format_value(canonical_value(raw)) == expected


@pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", float("inf"), ""])
def test_canonical_value_rejects_non_finite(raw: str | float) -> None:
    with pytest.raises(InvalidRateError):
        canonical_value(raw)


def test_normalize_rate_canonicalises_codes_and_value() -> None:
    record = make_rate(
        "3.7", destination=" nl ", partner="us", product_key=" 850440 ", currency="eur"
    )

    normalized = normalize_rate(record)

    assert normalized.destination == "NL"
    assert normalized.partner == "US"
    assert normalized.product_key == "850440"
    assert normalized.currency == "EUR"
    assert normalized.value == Decimal("3.700")


def test_rule_kind_matches_the_reconciliation_key() -> None:
    normalized = normalize_rate(make_rate(rule_kind=" MFN "))
    key = observation_key(make_observation(rule_kind="Mfn"))

    assert normalized.rule_kind == "mfn"
    assert key[3] == normalized.rule_kind


def test_normalize_rate_rejects_inverted_window() -> None:
    record = make_rate(effective_from=date(2026, 1, 1), effective_to=date(2026, 1, 1))

    with pytest.raises(InvalidRateError, match="effective_to"):
        normalize_rate(record)


def test_normalize_rate_rejects_empty_rule_kind() -> None:
    with pytest.raises(InvalidRateError):
        normalize_rate(make_rate(rule_kind=" "))


def test_normalize_rate_coerces_tier_strings() -> None:
    record = make_rate(tier="secondary")  # type: ignore[arg-type]

    assert normalize_rate(record).source_tier is SourceTier.SECONDARY


def test_is_active_on_is_half_open() -> None:
    record = make_rate(effective_from=date(2026, 1, 1), effective_to=date(2026, 7, 1))

    assert not record.is_active_on(date(2025, 12, 31))
    assert record.is_active_on(date(2026, 1, 1))
    assert record.is_active_on(date(2026, 6, 30))
    assert not record.is_active_on(date(2026, 7, 1))
