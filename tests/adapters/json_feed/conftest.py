"""Shared fixtures for JSON feed adapter tests."""

from __future__ import annotations

import pytest

from ratebook.config import FeedConfig, get_feed_config


@pytest.fixture
def feed_config() -> FeedConfig:
    return get_feed_config()


@pytest.fixture
def duty_rows() -> list[dict[str, object]]:
    return [
        {
            "dest": "NL",
            "partner": "US",
            "hs6": "850440",
            "ratePct": 3.7,
            "rule": "mfn",
            "effectiveFrom": "2026-01-01",
            "sourceUrl": "https://taxation-customs.ec.europa.eu/tariff/850440",
        },
        {
            "dest": "DE",
            "hs6": "0101.21",
            "ratePct": "12.5",
            "currency": "eur",
            "effectiveFrom": "2026-01-01",
            "effectiveTo": "2027-01-01",
            "notes": "quota",
            "components": [
                {"kind": "ad_valorem", "amount": "12.5"},
                {"kind": "specific", "amount": 3.5, "currency": "EUR", "uom": "kg"},
            ],
        },
    ]
