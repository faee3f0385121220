from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import IdempotencyStatus

if TYPE_CHECKING:
    from datetime import datetime

type JsonValue = dict[str, JsonValue] | list[JsonValue] | str | int | float | bool | None


@dataclass(frozen=True, slots=True, kw_only=True)
class IdempotencyRecord:
    """Snapshot of the stored state for one ``(scope, key)``."""

    scope: str
    key: str
    request_hash: str
    status: IdempotencyStatus
    response: JsonValue = None
    locked_at: datetime | None = None
    updated_at: datetime | None = None
