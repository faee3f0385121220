from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from ratebook.config import (
    ConfigurationError,
    configure_logging,
    env_csv,
    env_decimal,
    env_int,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


def test_env_int(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RATEBOOK_TEST_INT", raising=False)
    assert env_int("RATEBOOK_TEST_INT", 7) == 7

    monkeypatch.setenv("RATEBOOK_TEST_INT", " 12 ")
    assert env_int("RATEBOOK_TEST_INT", 7) == 12

    monkeypatch.setenv("RATEBOOK_TEST_INT", "0")
    with pytest.raises(ConfigurationError, match=">= 1"):
        env_int("RATEBOOK_TEST_INT", 7, minimum=1)

    monkeypatch.setenv("RATEBOOK_TEST_INT", "many")
    with pytest.raises(ConfigurationError, match="integer"):
        env_int("RATEBOOK_TEST_INT", 7)


@pytest.mark.parametrize("raw", ["abc", "-0.5", "NaN", "Infinity"])
def test_env_decimal_rejects_bad_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("RATEBOOK_TEST_DECIMAL", raw)

    with pytest.raises(ConfigurationError):
        env_decimal("RATEBOOK_TEST_DECIMAL", Decimal("0.2"))


def test_env_csv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATEBOOK_TEST_CSV", " gov , ,europa.eu ")
    assert env_csv("RATEBOOK_TEST_CSV", ()) == ("gov", "europa.eu")

    monkeypatch.setenv("RATEBOOK_TEST_CSV", " , ")
    with pytest.raises(ConfigurationError):
        env_csv("RATEBOOK_TEST_CSV", ())


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(logging.NOTSET)


@pytest.mark.usefixtures("restore_root_logger")
def test_log_level_comes_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATEBOOK_LOG_LEVEL", "debug")

    configure_logging(force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.usefixtures("restore_root_logger")
def test_unknown_log_level_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATEBOOK_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigurationError, match="RATEBOOK_LOG_LEVEL"):
        configure_logging(force=True)
