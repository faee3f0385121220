from __future__ import annotations

import pytest

from ratebook.domain.trust import TrustClassifier, host_is_or_sub, is_authoritative


@pytest.mark.parametrize(
    "url",
    [
        "https://www.cbp.gov/trade/rulings",
        "https://taxation-customs.ec.europa.eu/tariff",
        "http://www.gov.uk/trade-tariff",
        "https://CBSA-ASFC.GC.CA/tariff",
    ],
)
def test_allow_listed_hosts_are_authoritative(url: str) -> None:
    assert is_authoritative(url)


@pytest.mark.parametrize(
    "url",
    [
        None,
        "",
        "not a url",
        "ftp://www.cbp.gov/file",
        "https://rates.example.com/gov",
        "https://notgov.com",
        "https://europa.eu.example.com",
    ],
)
def test_everything_else_is_not_authoritative(url: str | None) -> None:
    assert not is_authoritative(url)


def test_host_match_requires_label_boundary() -> None:
    assert host_is_or_sub("gov.uk", "gov.uk")
    assert host_is_or_sub("www.gov.uk", "gov.uk")
    assert not host_is_or_sub("fakegov.uk", "gov.uk")


def test_custom_allow_list_is_cleaned() -> None:
    classifier = TrustClassifier(authoritative_domains=(" .Customs.Example ", "", "rates.test"))

    assert classifier.authoritative_domains == ("customs.example", "rates.test")
    assert classifier("https://api.customs.example/v1")
    assert not classifier("https://www.cbp.gov/")
