"""SQLAlchemy-backed unit of work for rates, audit records and idempotency keys."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ratebook.adapters.sqlalchemy.mappings import start_mappers
from ratebook.adapters.sqlalchemy.migrations import upgrade_head
from ratebook.adapters.sqlalchemy.repositories import (
    SqlAlchemyIdempotencyRepository,
    SqlAlchemyImportRunRepository,
    SqlAlchemyProvenanceRepository,
    SqlAlchemyRateRepository,
)
from ratebook.config import get_database_config
from ratebook.domain.ports.unit_of_work import RatebookRepositories

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy.engine import Engine

SQLITE_BUSY_TIMEOUT_SECONDS = 30


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _create_engine(uri: str) -> Engine:
    # Concurrent writers on one SQLite file wait for the lock instead of failing.
    if uri.startswith("sqlite"):
        return create_engine(
            uri,
            future=True,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT_SECONDS, "check_same_thread": False},
        )
    return create_engine(uri, future=True)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine, migrate the schema and prepare the session factory."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or _create_engine(database_uri or get_database_config().uri)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _engine = resolved_engine
    _session_factory = sessionmaker(bind=resolved_engine, expire_on_commit=False)


def configured_engine() -> Engine | None:
    return _engine


def is_started() -> bool:
    return _engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


class SqlAlchemyUnitOfWork:
    """One session exposing every ratebook repository; nothing is written until ``commit``."""

    def __init__(self) -> None:
        if _session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call ratebook.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        self.session_factory = _session_factory
        self._session: Session | None = None
        self._repositories: RatebookRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        session = self.session_factory()
        self._session = session
        self._repositories = RatebookRepositories(
            rates=SqlAlchemyRateRepository(session),
            provenance=SqlAlchemyProvenanceRepository(session),
            import_runs=SqlAlchemyImportRunRepository(session),
            idempotency=SqlAlchemyIdempotencyRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @property
    def repositories(self) -> RatebookRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        with self.session.begin_nested():
            yield


if TYPE_CHECKING:
    from ratebook.domain.ports.unit_of_work import RatebookUnitOfWork

    _uow_check: RatebookUnitOfWork = SqlAlchemyUnitOfWork()
