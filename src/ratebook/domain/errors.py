"""Domain error taxonomy.

Idempotency failures carry an HTTP-like ``status_code`` so callers facing HTTP can map
them directly: 400 for a missing key, 409 for every conflict variant. The messages are
part of the public contract and must not change.
"""

from __future__ import annotations

from typing import ClassVar


class RatebookError(Exception):
    """Base class for errors raised by the ratebook domain."""


class InvalidRateError(RatebookError, ValueError):
    """Raised when a rate row fails validation before it is written."""


class IdempotencyError(RatebookError):
    """Failure raised by the idempotency guard."""

    status_code: ClassVar[int] = 409

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(IdempotencyError):
    status_code: ClassVar[int] = 400


class ConflictError(IdempotencyError):
    status_code: ClassVar[int] = 409


KEY_REQUIRED = "Idempotency key required"
PAYLOAD_MISMATCH = "Idempotency key reused with different payload"
PREVIOUS_ATTEMPT_FAILED = "Previous attempt failed; use a new key"
IN_FLIGHT = "Processing"
RECORD_MISSING = "Idempotency record missing; retry"
