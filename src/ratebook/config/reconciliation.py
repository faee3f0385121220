"""Reconciliation tolerances and defaults."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Final

from .env import env_decimal, env_int, env_str
from .errors import ConfigurationError

RECONCILE_MODES: Final[frozenset[str]] = frozenset({"strict", "prefer_official", "any"})


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Agreement tolerances and the mode used when a caller does not pick one."""

    mode: str = "prefer_official"
    absolute_tolerance: Decimal = Decimal("0.2")
    relative_tolerance: Decimal = Decimal("0.02")
    component_absolute_tolerance: Decimal = Decimal("0.01")
    component_relative_tolerance: Decimal = Decimal("0.01")
    product_key_width: int = 6


def get_reconciliation_config() -> ReconciliationConfig:
    defaults = ReconciliationConfig()
    mode = env_str("RATEBOOK_RECONCILE_MODE", defaults.mode).lower()
    if mode not in RECONCILE_MODES:
        allowed = ", ".join(sorted(RECONCILE_MODES))
        raise ConfigurationError(f"RATEBOOK_RECONCILE_MODE must be one of {allowed}, got {mode!r}")
    return ReconciliationConfig(
        mode=mode,
        absolute_tolerance=env_decimal("RATEBOOK_AGREEMENT_ABSOLUTE", defaults.absolute_tolerance),
        relative_tolerance=env_decimal("RATEBOOK_AGREEMENT_RELATIVE", defaults.relative_tolerance),
        component_absolute_tolerance=env_decimal(
            "RATEBOOK_COMPONENT_ABSOLUTE", defaults.component_absolute_tolerance
        ),
        component_relative_tolerance=env_decimal(
            "RATEBOOK_COMPONENT_RELATIVE", defaults.component_relative_tolerance
        ),
        product_key_width=env_int(
            "RATEBOOK_PRODUCT_KEY_WIDTH", defaults.product_key_width, minimum=1
        ),
    )
