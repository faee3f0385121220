"""Two-source reconciliation of rate observations.

The reconciler is a pure function of its two observation lists and a mode: it never
fetches and never writes. Disagreement and missing data come back as ``Conflict``
values, never as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from ratebook.domain.errors import InvalidRateError
from ratebook.domain.model import (
    ConflictReason,
    RateRecord,
    ReconcileMode,
    SourceTier,
    canonical_value,
)
from ratebook.domain.trust import TrustClassifier

from .agreement import AgreementPolicy
from .contracts import Conflict, Decided, ReconciliationResult
from .normalize import DEFAULT_PRODUCT_KEY_WIDTH, normalize_currency, observation_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ratebook.domain.model import Observation

    from .contracts import ObservationKey

log = getLogger(__name__)


def coerce_mode(mode: ReconcileMode | str) -> ReconcileMode:
    try:
        return ReconcileMode(mode)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in ReconcileMode)
        raise ValueError(f"Unknown reconcile mode {mode!r}; expected one of {allowed}") from exc


def _is_writable(observation: Observation) -> bool:
    if not observation.destination.strip() or not observation.rule_kind.strip():
        return False
    effective_to = observation.effective_to
    if effective_to is not None and effective_to <= observation.effective_from:
        return False
    try:
        canonical_value(observation.value)
    except InvalidRateError:
        return False
    return True


def _key_order(key: ObservationKey) -> tuple[str, str, str, str]:
    destination, partner, product_key, rule_kind = key
    return (destination, partner, product_key or "", rule_kind)


@dataclass(frozen=True, slots=True)
class Reconciler:
    """Merge a left and a right observation set into decided rows and conflicts."""

    classifier: TrustClassifier = field(default_factory=TrustClassifier)
    policy: AgreementPolicy = field(default_factory=AgreementPolicy)
    product_key_width: int = DEFAULT_PRODUCT_KEY_WIDTH
    fallback_tier: SourceTier = SourceTier.SECONDARY

    def reconcile(
        self,
        left: Iterable[Observation],
        right: Iterable[Observation],
        mode: ReconcileMode | str = ReconcileMode.PREFER_OFFICIAL,
    ) -> ReconciliationResult:
        resolved_mode = coerce_mode(mode)
        result = ReconciliationResult()
        left_by_key = self._index(left, side="left", result=result)
        right_by_key = self._index(right, side="right", result=result)

        for key in sorted(left_by_key.keys() | right_by_key.keys(), key=_key_order):
            left_obs = left_by_key.get(key)
            right_obs = right_by_key.get(key)
            if left_obs is not None and right_obs is not None:
                self._settle_pair(key, left_obs, right_obs, resolved_mode, result)
            elif left_obs is not None:
                self._settle_single(
                    key, left_obs, ConflictReason.MISSING_RIGHT, resolved_mode, result
                )
            elif right_obs is not None:
                self._settle_single(
                    key, right_obs, ConflictReason.MISSING_LEFT, resolved_mode, result
                )

        log.info(
            "Reconciled %s keys in %s mode: decided=%s, conflicts=%s, rejected=%s",
            len(left_by_key.keys() | right_by_key.keys()),
            resolved_mode,
            len(result.decisions),
            len(result.conflicts),
            len(result.rejected),
        )
        return result

    def _index(
        self,
        observations: Iterable[Observation],
        *,
        side: str,
        result: ReconciliationResult,
    ) -> dict[ObservationKey, Observation]:
        indexed: dict[ObservationKey, Observation] = {}
        for observation in observations:
            if not _is_writable(observation):
                log.warning("Rejecting unwritable %s observation: %r", side, observation)
                result.rejected.append(observation)
                continue
            key = observation_key(observation, width=self.product_key_width)
            if key in indexed:
                log.debug("Duplicate %s observation for %s; keeping the later one", side, key)
            indexed[key] = observation
        return indexed

    def _settle_pair(
        self,
        key: ObservationKey,
        left: Observation,
        right: Observation,
        mode: ReconcileMode,
        result: ReconciliationResult,
    ) -> None:
        left_official = self.classifier.is_authoritative(left.source_url)
        right_official = self.classifier.is_authoritative(right.source_url)

        if self.policy.agrees(left, right):
            if right_official and not left_official:
                result.add(self._decide(key, right, secondary=left, official=True))
            else:
                result.add(self._decide(key, left, secondary=right, official=left_official))
            return

        if mode is ReconcileMode.STRICT:
            result.conflicts.append(
                Conflict(key=key, reason=ConflictReason.DISAGREEMENT, left=left, right=right)
            )
        elif left_official != right_official:
            winner = left if left_official else right
            result.add(self._decide(key, winner, official=True))
        elif mode is ReconcileMode.ANY:
            result.add(self._decide(key, left, official=left_official))
        else:
            result.conflicts.append(
                Conflict(key=key, reason=ConflictReason.DISAGREEMENT, left=left, right=right)
            )

    def _settle_single(
        self,
        key: ObservationKey,
        observation: Observation,
        missing: ConflictReason,
        mode: ReconcileMode,
        result: ReconciliationResult,
    ) -> None:
        official = self.classifier.is_authoritative(observation.source_url)
        if mode is ReconcileMode.ANY or (mode is ReconcileMode.PREFER_OFFICIAL and official):
            result.add(self._decide(key, observation, official=official))
            return

        reason = missing if mode is ReconcileMode.STRICT else ConflictReason.UNAUTHORITATIVE
        if missing is ConflictReason.MISSING_RIGHT:
            result.conflicts.append(Conflict(key=key, reason=reason, left=observation))
        else:
            result.conflicts.append(Conflict(key=key, reason=reason, right=observation))

    def _decide(
        self,
        key: ObservationKey,
        primary: Observation,
        *,
        official: bool,
        secondary: Observation | None = None,
    ) -> Decided:
        destination, partner, product_key, rule_kind = key
        record = RateRecord(
            destination=destination,
            partner=partner,
            product_key=product_key,
            rule_kind=rule_kind,
            value=canonical_value(primary.value),
            currency=normalize_currency(primary.currency),
            effective_from=primary.effective_from,
            effective_to=primary.effective_to,
            source_tier=SourceTier.OFFICIAL if official else self.fallback_tier,
            notes=primary.notes,
        )
        return Decided(key=key, primary=primary, secondary=secondary, record=record)


def reconcile(
    left: Iterable[Observation],
    right: Iterable[Observation],
    mode: ReconcileMode | str = ReconcileMode.PREFER_OFFICIAL,
    *,
    classifier: TrustClassifier | None = None,
    policy: AgreementPolicy | None = None,
) -> ReconciliationResult:
    """Reconcile with default settings unless a classifier or policy is supplied."""

    reconciler = Reconciler(
        classifier=classifier or TrustClassifier(),
        policy=policy or AgreementPolicy(),
    )
    return reconciler.reconcile(left, right, mode)
