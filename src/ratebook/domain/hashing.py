"""Deterministic content hashing for requests and rate rows.

Two values that are logically equal must serialise to the same bytes no matter how
their mappings were built, so mapping keys are sorted at every depth before hashing.
"""

from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from ratebook.domain.model.rates import format_value

if TYPE_CHECKING:
    from ratebook.domain.model import RateRecord


def _canonical(value: object, ancestors: set[int]) -> object:
    if isinstance(value, Mapping | list | tuple):
        marker = id(value)
        if marker in ancestors:
            return None
        ancestors.add(marker)
        try:
            if isinstance(value, Mapping):
                return {
                    str(key): _canonical(value[key], ancestors)
                    for key in sorted(value, key=str)
                }
            return [_canonical(item, ancestors) for item in value]
        finally:
            ancestors.discard(marker)
    if isinstance(value, Enum):
        return _canonical(value.value, ancestors)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def stable_stringify(value: object) -> str:
    """Serialise ``value`` to compact JSON with recursively sorted keys.

    A container that contains itself is written as ``null`` at the point of recursion, and so
    is a non-finite float.
    """

    return json.dumps(
        _canonical(value, set()),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def sha256_hex(data: str | bytes) -> str:
    payload = data.encode("utf-8") if isinstance(data, str) else data
    return hashlib.sha256(payload).hexdigest()


def request_hash(payload: object) -> str:
    return sha256_hex(stable_stringify(payload))


def rate_row_fields(record: RateRecord) -> dict[str, object]:
    """Logical fields of a rate row; surrogate ids and timestamps are excluded."""

    return {
        "destination": record.destination,
        "partner": record.partner,
        "product_key": record.product_key,
        "rule_kind": record.rule_kind,
        "value": format_value(record.value),
        "currency": record.currency,
        "effective_from": record.effective_from.isoformat(),
        "effective_to": record.effective_to.isoformat() if record.effective_to else None,
        "notes": record.notes,
        "source_tier": str(record.source_tier),
    }


def row_hash(record: RateRecord) -> str:
    return sha256_hex(stable_stringify(rate_row_fields(record)))
