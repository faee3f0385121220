"""Exactly-once execution of a producer per ``(scope, key)``.

The only coordination primitive is the idempotency row itself: a conditional update
that moves it from ``pending`` to ``processing``. Exactly one caller can win that
update. Everyone else inspects the row and either replays the stored response or gets
a ``ConflictError``. The claim, the producer call and the result write all run in one
database transaction, so concurrent callers wait on the row (or on the SQLite write
lock) until the winner commits, then replay its result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, cast

from ratebook.domain.errors import (
    IN_FLIGHT,
    KEY_REQUIRED,
    PAYLOAD_MISMATCH,
    PREVIOUS_ATTEMPT_FAILED,
    RECORD_MISSING,
    BadRequestError,
    ConflictError,
)
from ratebook.domain.hashing import request_hash
from ratebook.domain.model import IdempotencyStatus, JsonValue

if TYPE_CHECKING:
    from ratebook.domain.model import IdempotencyRecord
    from ratebook.domain.ports import IdempotencyRepository, RatebookUnitOfWork

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], RatebookUnitOfWork]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class IdempotencyGuard:
    unit_of_work_factory: UnitOfWorkFactory
    clock: Callable[[], datetime] = _utcnow

    def run[T: JsonValue](  # noqa: PLR0913
        self,
        scope: str,
        key: str | None,
        payload: object,
        producer: Callable[[], T],
        *,
        on_replay: Callable[[T], T | None] | None = None,
        max_age: timedelta | None = None,
    ) -> T:
        """Run ``producer`` at most once for ``(scope, key)`` and return its result.

        A repeat call with the same payload returns the stored result. When ``on_replay``
        is given and the stored result is older than ``max_age`` (or ``max_age`` is not
        set), the hook may return a replacement that is stored and returned instead.

        Raises ``BadRequestError`` for a missing key and ``ConflictError`` when the key was
        used for a different payload, the earlier attempt failed, or another caller is
        still running the producer. Exceptions from ``producer`` propagate unchanged
        after the key is marked failed.
        """

        if not key:
            raise BadRequestError(KEY_REQUIRED)

        digest = request_hash(payload)
        now = self.clock()

        with self.unit_of_work_factory() as uow:
            repository = uow.repositories.idempotency
            repository.insert_pending(scope=scope, key=key, request_hash=digest, now=now)
            claimed_hash = repository.claim(scope=scope, key=key, now=now)

            if claimed_hash is not None:
                if claimed_hash != digest:
                    raise ConflictError(PAYLOAD_MISMATCH)
                return self._execute(uow, repository, scope, key, producer)

            row = repository.get(scope=scope, key=key)
            if row is None:
                raise ConflictError(RECORD_MISSING)
            if row.request_hash != digest:
                raise ConflictError(PAYLOAD_MISMATCH)
            if row.status is IdempotencyStatus.COMPLETED:
                cached = cast("T", row.response)
                if on_replay is None or not self._is_stale(row, now, max_age):
                    log.debug("Replaying stored response for %s/%s", scope, key)
                    return cached
                refreshed = on_replay(cached)
                if refreshed is None:
                    return cached
                repository.replace_response(
                    scope=scope, key=key, response=refreshed, now=self.clock()
                )
                uow.commit()
                log.debug("Refreshed stored response for %s/%s", scope, key)
                return refreshed
            if row.status is IdempotencyStatus.FAILED:
                raise ConflictError(PREVIOUS_ATTEMPT_FAILED)
            raise ConflictError(IN_FLIGHT)

    def _execute[T: JsonValue](
        self,
        uow: RatebookUnitOfWork,
        repository: IdempotencyRepository,
        scope: str,
        key: str,
        producer: Callable[[], T],
    ) -> T:
        try:
            response = producer()
        except Exception as exc:
            repository.fail(
                scope=scope, key=key, response={"error": str(exc)}, now=self.clock()
            )
            uow.commit()
            raise
        repository.complete(scope=scope, key=key, response=response, now=self.clock())
        uow.commit()
        return response

    @staticmethod
    def _is_stale(row: IdempotencyRecord, now: datetime, max_age: timedelta | None) -> bool:
        if max_age is None or row.updated_at is None:
            return True
        return now - row.updated_at > max_age


def sweep_stale_idempotency(
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    stale_after: timedelta,
    clock: Callable[[], datetime] = _utcnow,
) -> int:
    """Fail ``processing`` keys whose lock is older than ``stale_after``; return the count."""

    now = clock()
    with unit_of_work_factory() as uow:
        swept = uow.repositories.idempotency.fail_stale(cutoff=now - stale_after, now=now)
        uow.commit()
    if swept:
        log.info("Marked %s stale idempotency keys as failed", swept)
    return swept
