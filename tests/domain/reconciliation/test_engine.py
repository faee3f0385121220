from __future__ import annotations

from decimal import Decimal

import pytest

from ratebook.domain.model import ConflictReason, RateComponent, ReconcileMode, SourceTier
from ratebook.domain.reconciliation import Reconciler, reconcile
from tests.helpers.rates import OFFICIAL_URL, SECONDARY_URL, make_observation

OTHER_SECONDARY_URL = "https://duties.example.org/api/rates"


@pytest.mark.parametrize("mode", list(ReconcileMode))
def test_agreeing_observations_are_decided_in_every_mode(mode: ReconcileMode) -> None:
    left = make_observation("3.700", source_url=SECONDARY_URL)
    right = make_observation("3.750", source_url=OTHER_SECONDARY_URL)

    result = reconcile([left], [right], mode)

    assert result.conflicts == []
    assert len(result.decisions) == 1
    decision = result.decisions[0]
    assert decision.primary is left
    assert decision.secondary is right
    assert decision.record.value == Decimal("3.700")
    assert decision.record.source_tier is SourceTier.SECONDARY


def test_agreement_prefers_the_authoritative_side_as_primary() -> None:
    left = make_observation("3.700", source_url=SECONDARY_URL)
    right = make_observation("3.710", source_url=OFFICIAL_URL)

    result = reconcile([left], [right])

    (decision,) = result.decisions
    assert decision.primary is right
    assert decision.record.value == Decimal("3.710")
    assert decision.record.source_tier is SourceTier.OFFICIAL


@pytest.mark.parametrize("official_side", ["left", "right"])
def test_official_wins_on_disagreement(official_side: str) -> None:
    official = make_observation("3.700", source_url=OFFICIAL_URL)
    secondary = make_observation("9.000", source_url=SECONDARY_URL)
    left, right = (official, secondary) if official_side == "left" else (secondary, official)

    result = reconcile([left], [right], ReconcileMode.PREFER_OFFICIAL)

    assert result.conflicts == []
    (record,) = result.decided
    assert record.value == Decimal("3.700")
    assert record.source_tier is SourceTier.OFFICIAL
    assert result.source_ref_for(record) == OFFICIAL_URL


def test_prefer_official_reports_disagreement_between_equals() -> None:
    left = make_observation("3.700", source_url=SECONDARY_URL)
    right = make_observation("9.000", source_url=OTHER_SECONDARY_URL)

    result = reconcile([left], [right], ReconcileMode.PREFER_OFFICIAL)

    assert result.decisions == []
    (conflict,) = result.conflicts
    assert conflict.reason is ConflictReason.DISAGREEMENT
    assert conflict.left is left
    assert conflict.right is right
    assert conflict.key == ("NL", "US", "850440", "mfn")


def test_strict_mode_never_overrides_disagreement() -> None:
    left = make_observation("3.700", source_url=OFFICIAL_URL)
    right = make_observation("9.000", source_url=SECONDARY_URL)

    result = reconcile([left], [right], ReconcileMode.STRICT)

    assert result.decisions == []
    assert [conflict.reason for conflict in result.conflicts] == [ConflictReason.DISAGREEMENT]


def test_any_mode_takes_left_on_disagreement_and_reports_nothing() -> None:
    left = make_observation("3.700", source_url=SECONDARY_URL)
    right = make_observation("9.000", source_url=OTHER_SECONDARY_URL)
    only_right = make_observation("1.000", product_key="0101.21", source_url=None)

    result = reconcile([left], [right, only_right], ReconcileMode.ANY)

    assert result.conflicts == []
    assert sorted(record.value for record in result.decided) == [
        Decimal("1.000"),
        Decimal("3.700"),
    ]


def test_single_sided_keys_per_mode() -> None:
    official_only = make_observation("2.000", product_key="0101.21", source_url=OFFICIAL_URL)
    secondary_only = make_observation("5.000", product_key="0202.30", source_url=SECONDARY_URL)

    strict = reconcile([official_only], [secondary_only], ReconcileMode.STRICT)
    assert {conflict.reason for conflict in strict.conflicts} == {
        ConflictReason.MISSING_RIGHT,
        ConflictReason.MISSING_LEFT,
    }
    assert strict.decisions == []

    preferred = reconcile([official_only], [secondary_only], ReconcileMode.PREFER_OFFICIAL)
    (record,) = preferred.decided
    assert record.product_key == "010121"
    assert record.source_tier is SourceTier.OFFICIAL
    (conflict,) = preferred.conflicts
    assert conflict.reason is ConflictReason.UNAUTHORITATIVE
    assert conflict.right is secondary_only


def test_keys_are_normalised_before_pairing() -> None:
    left = make_observation("3.700", destination=" nl ", partner="us", product_key="8504.40.90")
    right = make_observation("3.700", destination="NL", partner="US", product_key="850440")

    result = reconcile([left], [right], ReconcileMode.STRICT)

    assert result.conflicts == []
    (record,) = result.decided
    assert record.natural_key[:4] == ("NL", "US", "850440", "mfn")


def test_mfn_observations_use_the_empty_partner() -> None:
    result = reconcile([make_observation(partner=None)], [], ReconcileMode.ANY)

    (record,) = result.decided
    assert record.partner == ""


def test_component_mismatch_is_a_disagreement() -> None:
    specific = RateComponent(kind="specific", amount=Decimal("3.50"), currency="EUR", unit="kg")
    other_unit = RateComponent(kind="specific", amount=Decimal("3.50"), currency="EUR", unit="l")
    left = make_observation("12", currency="EUR", components=[specific])
    right = make_observation("12", currency="EUR", components=[other_unit])

    result = reconcile([left], [right], ReconcileMode.STRICT)

    assert [conflict.reason for conflict in result.conflicts] == [ConflictReason.DISAGREEMENT]


def test_currency_mismatch_is_a_disagreement() -> None:
    left = make_observation("3.700", currency="EUR")
    right = make_observation("3.700", currency="USD")

    result = reconcile([left], [right], ReconcileMode.STRICT)

    assert result.decisions == []


def test_unwritable_observations_are_rejected_not_conflicted() -> None:
    bad_value = make_observation("NaN")
    empty_destination = make_observation("1.0", destination="  ", product_key="0101")
    good = make_observation("3.700", product_key="0202")

    result = reconcile([bad_value, empty_destination], [good], ReconcileMode.ANY)

    assert result.rejected == [bad_value, empty_destination]
    assert result.conflicts == []
    assert len(result.decisions) == 1


def test_later_duplicate_on_one_side_wins() -> None:
    first = make_observation("1.000")
    second = make_observation("2.000")

    result = reconcile([first, second], [], ReconcileMode.ANY)

    (record,) = result.decided
    assert record.value == Decimal("2.000")


def test_fallback_tier_applies_to_unauthoritative_rows() -> None:
    reconciler = Reconciler(fallback_tier=SourceTier.DERIVED)

    result = reconciler.reconcile([make_observation()], [], ReconcileMode.ANY)

    (record,) = result.decided
    assert record.source_tier is SourceTier.DERIVED


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown reconcile mode"):
        reconcile([], [], "loose")
