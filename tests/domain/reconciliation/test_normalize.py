from __future__ import annotations

import pytest

from ratebook.domain.reconciliation import normalize_product_key, observation_key
from tests.helpers.rates import make_observation


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("8504.40.90", "850440"),
        (" 850440 ", "850440"),
        ("0101", "0101"),
        ("gsp-program", "GSP-PROGRAM"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_product_key(raw: str | None, expected: str | None) -> None:
    assert normalize_product_key(raw) == expected


def test_normalize_product_key_width() -> None:
    assert normalize_product_key("8504.40.90", width=8) == "85044090"


def test_observation_key_upper_cases_codes_and_lower_cases_rule() -> None:
    observation = make_observation(destination="nl", partner=" us ", rule_kind=" MFN ")

    assert observation_key(observation) == ("NL", "US", "850440", "mfn")
