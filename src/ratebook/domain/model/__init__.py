"""Public domain model surface."""

from __future__ import annotations

from ratebook.domain.model.audit import ImportRun, ProvenanceEntry
from ratebook.domain.model.enums import (
    ConflictReason,
    IdempotencyStatus,
    ImportStatus,
    ReconcileMode,
    ResourceType,
    SourceTier,
)
from ratebook.domain.model.idempotency import IdempotencyRecord, JsonValue
from ratebook.domain.model.rates import (
    MFN_PARTNER,
    NaturalKey,
    Observation,
    RateComponent,
    RateRecord,
    canonical_value,
    format_value,
    normalize_rate,
    normalize_rule_kind,
)

__all__ = [
    "MFN_PARTNER",
    "ConflictReason",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "ImportRun",
    "ImportStatus",
    "JsonValue",
    "NaturalKey",
    "Observation",
    "ProvenanceEntry",
    "RateComponent",
    "RateRecord",
    "ReconcileMode",
    "ResourceType",
    "SourceTier",
    "canonical_value",
    "format_value",
    "normalize_rate",
    "normalize_rule_kind",
]
