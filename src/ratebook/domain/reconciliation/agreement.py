"""Tolerance policy deciding whether two observations state the same fact."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from .normalize import normalize_basis, normalize_currency

if TYPE_CHECKING:
    from ratebook.domain.model import Observation, RateComponent


def within_tolerance(a: Decimal, b: Decimal, *, absolute: Decimal, relative: Decimal) -> bool:
    """``|a - b| <= max(absolute, relative * max(|a|, |b|))``.

    Symmetric in ``a`` and ``b``.
    """

    allowed = max(absolute, relative * max(abs(a), abs(b)))
    return abs(a - b) <= allowed


@dataclass(frozen=True, slots=True)
class AgreementPolicy:
    absolute: Decimal = Decimal("0.2")
    relative: Decimal = Decimal("0.02")
    component_absolute: Decimal = Decimal("0.01")
    component_relative: Decimal = Decimal("0.01")

    def agrees(self, left: Observation, right: Observation) -> bool:
        if normalize_currency(left.currency) != normalize_currency(right.currency):
            return False
        if normalize_basis(left.basis) != normalize_basis(right.basis):
            return False
        if not within_tolerance(
            Decimal(left.value),
            Decimal(right.value),
            absolute=self.absolute,
            relative=self.relative,
        ):
            return False
        return self._components_agree(left.components, right.components)

    def _components_agree(
        self,
        left: tuple[RateComponent, ...],
        right: tuple[RateComponent, ...],
    ) -> bool:
        if len(left) != len(right):
            return False
        left_sorted = sorted(left, key=_sort_key)
        right_sorted = sorted(right, key=_sort_key)
        for a, b in zip(left_sorted, right_sorted, strict=True):
            if a.signature != b.signature:
                return False
            if not within_tolerance(
                Decimal(a.amount),
                Decimal(b.amount),
                absolute=self.component_absolute,
                relative=self.component_relative,
            ):
                return False
        return True


def _sort_key(component: RateComponent) -> tuple[str, str, str, str, Decimal]:
    kind, currency, unit, qualifier = component.signature
    return (kind, currency or "", unit or "", qualifier or "", Decimal(component.amount))
