"""Import batching and housekeeping thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_int


@dataclass(frozen=True, slots=True)
class ImportConfig:
    batch_size: int = 5000
    import_stale_minutes: int = 30
    idempotency_stale_minutes: int = 15

    @property
    def import_stale_after(self) -> timedelta:
        return timedelta(minutes=self.import_stale_minutes)

    @property
    def idempotency_stale_after(self) -> timedelta:
        return timedelta(minutes=self.idempotency_stale_minutes)


def get_import_config() -> ImportConfig:
    defaults = ImportConfig()
    return ImportConfig(
        batch_size=env_int("RATEBOOK_IMPORT_BATCH_SIZE", defaults.batch_size, minimum=1),
        import_stale_minutes=env_int(
            "RATEBOOK_IMPORT_STALE_MINUTES", defaults.import_stale_minutes, minimum=1
        ),
        idempotency_stale_minutes=env_int(
            "RATEBOOK_IDEMPOTENCY_STALE_MINUTES", defaults.idempotency_stale_minutes, minimum=1
        ),
    )
