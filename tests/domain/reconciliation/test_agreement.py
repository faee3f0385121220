from __future__ import annotations

from decimal import Decimal

import pytest

from ratebook.domain.model import RateComponent
from ratebook.domain.reconciliation import AgreementPolicy, within_tolerance
from tests.helpers.rates import make_observation


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("3.700", "3.700", True),
        ("3.700", "3.900", True),
        ("3.700", "3.901", False),
        ("100", "102", True),
        ("100", "102.1", False),
        ("0", "0.2", True),
    ],
)
def test_within_tolerance(a: str, b: str, *, expected: bool) -> None:
    policy = {"absolute": Decimal("0.2"), "relative": Decimal("0.02")}

    assert within_tolerance(Decimal(a), Decimal(b), **policy) is expected
    assert within_tolerance(Decimal(b), Decimal(a), **policy) is expected


def test_basis_must_match_exactly_after_normalisation() -> None:
    policy = AgreementPolicy()

    assert policy.agrees(make_observation(basis="CIF"), make_observation(basis=" cif "))
    assert not policy.agrees(make_observation(basis="cif"), make_observation(basis="fob"))
    assert not policy.agrees(make_observation(basis="cif"), make_observation(basis=None))


def test_components_compare_regardless_of_order() -> None:
    ad_valorem = RateComponent(kind="ad_valorem", amount=Decimal("12"))
    specific = RateComponent(kind="specific", amount=Decimal("3.50"), currency="EUR", unit="kg")
    close = RateComponent(kind="specific", amount=Decimal("3.51"), currency="eur", unit="KG")
    policy = AgreementPolicy()

    assert policy.agrees(
        make_observation("12", components=[ad_valorem, specific]),
        make_observation("12", components=[close, ad_valorem]),
    )
    assert not policy.agrees(
        make_observation("12", components=[ad_valorem, specific]),
        make_observation("12", components=[ad_valorem]),
    )


def test_custom_tolerance_is_honoured() -> None:
    strict = AgreementPolicy(absolute=Decimal("0"), relative=Decimal("0"))

    assert not strict.agrees(make_observation("3.700"), make_observation("3.701"))
    assert strict.agrees(make_observation("3.700"), make_observation("3.7"))
