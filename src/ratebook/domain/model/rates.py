"""Rate facts: persisted canonical rows and ephemeral per-source observations."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final

from ratebook.domain.errors import InvalidRateError

from .enums import SourceTier

if TYPE_CHECKING:
    from datetime import date, datetime

MFN_PARTNER: Final[str] = ""
"""Partner sentinel for most-favoured-nation rows (no specific partner)."""

VALUE_QUANTUM: Final[Decimal] = Decimal("0.001")

type NaturalKey = tuple[str, str, str | None, str, date]
type RawValue = Decimal | str | int | float


def canonical_value(value: RawValue) -> Decimal:
    """Return ``value`` as a finite decimal rounded to three places.

    Floats go through ``str`` first so ``0.1`` becomes ``0.100`` rather than its binary
    expansion. Negative zero collapses to ``0.000``.
    """

    try:
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidRateError(f"Rate value is not numeric: {value!r}") from exc
    if not number.is_finite():
        raise InvalidRateError(f"Rate value must be finite: {value!r}")
    quantized = number.quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)
    if quantized.is_zero():
        return Decimal("0.000")
    return quantized


def format_value(value: Decimal) -> str:
    return f"{canonical_value(value):f}"


def normalize_rule_kind(value: str | None) -> str:
    """Rule kinds are case-insensitive labels stored lowercase (``MFN`` becomes ``mfn``)."""

    return (value or "").strip().lower()


@dataclass(frozen=True, slots=True, kw_only=True)
class RateRecord:
    """Canonical, effective-dated rate fact valid over ``[effective_from, effective_to)``."""

    destination: str
    partner: str = MFN_PARTNER
    product_key: str | None = None
    rule_kind: str
    value: Decimal
    currency: str | None = None
    effective_from: date
    effective_to: date | None = None
    source_tier: SourceTier = SourceTier.SECONDARY
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def natural_key(self) -> NaturalKey:
        return (
            self.destination,
            self.partner,
            self.product_key,
            self.rule_kind,
            self.effective_from,
        )

    def is_active_on(self, day: date) -> bool:
        if day < self.effective_from:
            return False
        return self.effective_to is None or day < self.effective_to


def normalize_rate(record: RateRecord) -> RateRecord:
    """Return ``record`` in canonical form, raising ``InvalidRateError`` if it cannot be written."""

    destination = record.destination.strip().upper()
    if not destination:
        raise InvalidRateError("Rate destination must not be empty")
    rule_kind = normalize_rule_kind(record.rule_kind)
    if not rule_kind:
        raise InvalidRateError(f"Rate rule kind must not be empty for {destination}")
    if record.effective_to is not None and record.effective_to <= record.effective_from:
        raise InvalidRateError(
            f"effective_to {record.effective_to} must be after effective_from "
            f"{record.effective_from} for {destination}/{rule_kind}"
        )
    partner = (record.partner or MFN_PARTNER).strip().upper()
    product_key = record.product_key.strip() if record.product_key else None
    currency = record.currency.strip().upper() if record.currency else None
    return replace(
        record,
        destination=destination,
        partner=partner,
        product_key=product_key or None,
        rule_kind=rule_kind,
        value=canonical_value(record.value),
        currency=currency or None,
        source_tier=SourceTier(record.source_tier),
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class RateComponent:
    """One part of a compound rate, e.g. ``12% + 3.50 EUR/kg``."""

    kind: str
    amount: Decimal
    currency: str | None = None
    unit: str | None = None
    qualifier: str | None = None

    @property
    def signature(self) -> tuple[str, str | None, str | None, str | None]:
        return (
            self.kind.strip().lower(),
            self.currency.strip().upper() if self.currency else None,
            self.unit.strip().lower() if self.unit else None,
            self.qualifier.strip().lower() if self.qualifier else None,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Observation:
    """A single source's claim about a rate, as delivered by an upstream adapter."""

    destination: str
    partner: str | None = None
    product_key: str | None = None
    rule_kind: str
    value: Decimal
    currency: str | None = None
    basis: str | None = None
    components: tuple[RateComponent, ...] = ()
    effective_from: date
    effective_to: date | None = None
    source_url: str | None = None
    confidence: float | None = None
    notes: str | None = None
