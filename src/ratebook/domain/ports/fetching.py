"""Ports for fetching external observations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ratebook.domain.model import Observation


@runtime_checkable
class ObservationFetcher(Protocol):
    """Callable port returning every observation published at ``url``."""

    def __call__(self, url: str) -> list[Observation]: ...


__all__ = ["ObservationFetcher"]
