"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SourceTier(StrEnum):
    """Trust level of the feed a rate row came from, highest first."""

    OFFICIAL = "official"
    SECONDARY = "secondary"
    DERIVED = "derived"


class ReconcileMode(StrEnum):
    STRICT = "strict"
    PREFER_OFFICIAL = "prefer_official"
    ANY = "any"


class ConflictReason(StrEnum):
    DISAGREEMENT = "disagreement"
    MISSING_LEFT = "missing_left"
    MISSING_RIGHT = "missing_right"
    UNAUTHORITATIVE = "unauthoritative"


class IdempotencyStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportStatus(StrEnum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ResourceType(StrEnum):
    """Kind of persisted row a provenance entry points at."""

    RATE = "rate"
