"""Shared logging helpers for ratebook."""

from __future__ import annotations

import logging

from .env import env_str
from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger for CLI output.

    The level comes from ``RATEBOOK_LOG_LEVEL`` unless passed explicitly. Request-level
    chatter from httpx is kept at WARNING so import summaries stay readable.
    """

    if level is None:
        name = env_str("RATEBOOK_LOG_LEVEL", "INFO").upper()
        resolved = logging.getLevelNamesMapping().get(name)
        if resolved is None:
            raise ConfigurationError(f"RATEBOOK_LOG_LEVEL must be a logging level, got {name!r}")
        level = resolved

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
