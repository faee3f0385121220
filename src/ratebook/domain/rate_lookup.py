"""Read paths over the rate table and its provenance."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ratebook.domain.model import normalize_rule_kind
from ratebook.domain.reconciliation.normalize import normalize_code

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID

    from ratebook.domain.model import ProvenanceEntry
    from ratebook.domain.ports import RatebookUnitOfWork, StoredRate

type UnitOfWorkFactory = Callable[[], RatebookUnitOfWork]


def find_active_rate(  # noqa: PLR0913
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    destination: str,
    product_key: str | None,
    on: date,
    partner: str | None = None,
    rule_kind: str | None = None,
) -> StoredRate | None:
    """Return the row in force on ``on``.

    A row for the exact ``partner`` beats the most-favoured-nation row, then the higher
    source tier wins, then the most recent ``effective_from``.
    """

    with unit_of_work_factory() as uow:
        return uow.repositories.rates.find_active(
            destination=normalize_code(destination),
            product_key=(product_key or "").strip() or None,
            on=on,
            partner=normalize_code(partner) or None,
            rule_kind=normalize_rule_kind(rule_kind) or None,
        )


def provenance_for(
    resource_id: UUID, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[ProvenanceEntry]:
    with unit_of_work_factory() as uow:
        return uow.repositories.provenance.for_resource(resource_id)
