"""Wire schema for JSON rate observation feeds.

Feeds are a JSON array of rows, or an object holding that array under ``rows``. Field
names follow the camelCase used by the upstream exporters; snake_case is accepted too.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, RootModel

log = logging.getLogger(__name__)


class FeedModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class ComponentPayload(FeedModel):
    kind: str
    amount: Decimal
    currency: str | None = None
    unit: str | None = Field(default=None, validation_alias=AliasChoices("unit", "uom"))
    qualifier: str | None = None


class ObservationPayload(FeedModel):
    destination: str = Field(validation_alias=AliasChoices("dest", "destination"))
    partner: str | None = None
    product_key: str | None = Field(
        default=None, validation_alias=AliasChoices("hs6", "productKey", "product_key")
    )
    rule_kind: str = Field(
        default="mfn", validation_alias=AliasChoices("rule", "ruleKind", "rule_kind")
    )
    value: Decimal = Field(validation_alias=AliasChoices("value", "ratePct", "rate"))
    currency: str | None = None
    basis: str | None = None
    components: tuple[ComponentPayload, ...] = ()
    effective_from: date = Field(
        validation_alias=AliasChoices("effectiveFrom", "effective_from")
    )
    effective_to: date | None = Field(
        default=None, validation_alias=AliasChoices("effectiveTo", "effective_to")
    )
    source_url: str | None = Field(
        default=None, validation_alias=AliasChoices("sourceUrl", "source_url")
    )
    confidence: float | None = None
    notes: str | None = None


class ObservationFeed(RootModel[list[ObservationPayload]]):
    pass
