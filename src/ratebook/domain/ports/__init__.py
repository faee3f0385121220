"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import ObservationFetcher
from .persistence import (
    IdempotencyRepository,
    ImportRunRepository,
    ProvenanceRepository,
    RateRepository,
    Repository,
    StoredRate,
    WrittenRate,
)
from .unit_of_work import RatebookRepositories, RatebookUnitOfWork

__all__ = [
    "IdempotencyRepository",
    "ImportRunRepository",
    "ObservationFetcher",
    "ProvenanceRepository",
    "RateRepository",
    "RatebookRepositories",
    "RatebookUnitOfWork",
    "Repository",
    "StoredRate",
    "WrittenRate",
]
