"""Unit-of-work boundary coordinating the ratebook repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from types import TracebackType

    from ratebook.domain.ports.persistence import (
        IdempotencyRepository,
        ImportRunRepository,
        ProvenanceRepository,
        RateRepository,
    )


@dataclass(slots=True)
class RatebookRepositories:
    rates: RateRepository
    provenance: ProvenanceRepository
    import_runs: ImportRunRepository
    idempotency: IdempotencyRepository


@runtime_checkable
class RatebookUnitOfWork(Protocol):
    """Transaction boundary: nothing is persisted until ``commit``."""

    @property
    def repositories(self) -> RatebookRepositories: ...

    def __enter__(self) -> RatebookUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def savepoint(self) -> AbstractContextManager[None]:
        """Nested transaction; an exception inside rolls back only the nested part."""
        ...
