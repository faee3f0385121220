"""Translate feed payloads into domain observations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ratebook.domain.model import Observation, RateComponent

if TYPE_CHECKING:
    from .schema import ComponentPayload, ObservationPayload


def _component(payload: ComponentPayload) -> RateComponent:
    return RateComponent(
        kind=payload.kind,
        amount=payload.amount,
        currency=payload.currency,
        unit=payload.unit,
        qualifier=payload.qualifier,
    )


def translate_observation(
    payload: ObservationPayload, *, feed_url: str | None = None
) -> Observation:
    """Build an ``Observation``; rows without their own source URL inherit the feed URL."""

    return Observation(
        destination=payload.destination,
        partner=payload.partner,
        product_key=payload.product_key,
        rule_kind=payload.rule_kind,
        value=payload.value,
        currency=payload.currency,
        basis=payload.basis,
        components=tuple(_component(component) for component in payload.components),
        effective_from=payload.effective_from,
        effective_to=payload.effective_to,
        source_url=payload.source_url or feed_url,
        confidence=payload.confidence,
        notes=payload.notes,
    )
