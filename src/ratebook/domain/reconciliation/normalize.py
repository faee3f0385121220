"""Key and field normalisation for incoming observations."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ratebook.domain.model import MFN_PARTNER, normalize_rule_kind

if TYPE_CHECKING:
    from ratebook.domain.model import Observation

    from .contracts import ObservationKey

DEFAULT_PRODUCT_KEY_WIDTH = 6

_NON_DIGITS = re.compile(r"\D+")


def normalize_code(value: str | None) -> str:
    return (value or "").strip().upper()


def normalize_product_key(
    value: str | None, *, width: int = DEFAULT_PRODUCT_KEY_WIDTH
) -> str | None:
    """Reduce a classification code to its canonical width.

    Separators are dropped (``8504.40.90`` becomes ``850440``). A code with no digits is
    kept as its trimmed text so non-numeric program keys still group consistently.
    """

    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        return None
    digits = _NON_DIGITS.sub("", stripped)
    if not digits:
        return stripped.upper()
    return digits[:width]


def normalize_currency(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip().upper() or None


def normalize_basis(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip().lower() or None


def observation_key(
    observation: Observation, *, width: int = DEFAULT_PRODUCT_KEY_WIDTH
) -> ObservationKey:
    return (
        normalize_code(observation.destination),
        normalize_code(observation.partner) or MFN_PARTNER,
        normalize_product_key(observation.product_key, width=width),
        normalize_rule_kind(observation.rule_kind),
    )
