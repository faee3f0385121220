"""Reconciliation of independently sourced rate observations.

Flow:
1) normalise observation keys on both sides
2) pair observations by key
3) test agreement within the configured tolerance
4) settle each key per mode and source authority, or report a conflict
"""

from __future__ import annotations

from .agreement import AgreementPolicy, within_tolerance
from .contracts import Conflict, Decided, ObservationKey, ReconciliationResult
from .engine import Reconciler, coerce_mode, reconcile
from .normalize import normalize_product_key, observation_key

__all__ = [
    "AgreementPolicy",
    "Conflict",
    "Decided",
    "ObservationKey",
    "ReconciliationResult",
    "Reconciler",
    "coerce_mode",
    "normalize_product_key",
    "observation_key",
    "reconcile",
    "within_tolerance",
]
