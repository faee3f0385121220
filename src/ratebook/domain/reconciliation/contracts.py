"""Shared reconciliation contract components.

This module holds only:
- the observation key alias
- the ``Decided`` / ``Conflict`` outcome dataclasses
- the result container handed to the upsert stage
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ratebook.domain.model import (
        ConflictReason,
        NaturalKey,
        Observation,
        RateRecord,
    )


type ObservationKey = tuple[str, str, str | None, str]
"""``(destination, partner, product_key, rule_kind)`` after normalisation."""


@dataclass(frozen=True, slots=True, kw_only=True)
class Decided:
    """Key settled to one canonical row.

    ``secondary`` is the agreeing observation from the other side, kept for audit only.
    """

    key: ObservationKey
    primary: Observation
    record: RateRecord
    secondary: Observation | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Conflict:
    """Key the reconciler refused to settle; needs a caller or operator decision."""

    key: ObservationKey
    reason: ConflictReason
    left: Observation | None = None
    right: Observation | None = None


@dataclass(slots=True)
class ReconciliationResult:
    decisions: list[Decided] = field(default_factory=list["Decided"])
    conflicts: list[Conflict] = field(default_factory=list["Conflict"])
    rejected: list[Observation] = field(default_factory=list["Observation"])
    """Observations that could never become a row (non-numeric value, empty key, bad dates)."""
    _source_refs: dict[NaturalKey, str | None] = field(
        default_factory=dict["NaturalKey", "str | None"], repr=False
    )

    @property
    def decided(self) -> list[RateRecord]:
        return [decision.record for decision in self.decisions]

    def add(self, decision: Decided) -> None:
        self.decisions.append(decision)
        self._source_refs[decision.record.natural_key] = decision.primary.source_url

    def source_ref_for(self, record: RateRecord) -> str | None:
        """Source URL of the observation that produced ``record``."""

        return self._source_refs.get(record.natural_key)
