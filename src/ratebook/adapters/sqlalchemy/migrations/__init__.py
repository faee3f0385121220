"""Programmatic access to the Alembic migrations shipped with the package."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from ratebook.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent


def build_config(database_uri: str | None = None) -> Config:
    """Alembic config pointing at the bundled scripts, independent of the working directory."""

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        # Alembic options go through configparser interpolation.
        config.set_main_option("sqlalchemy.url", database_uri.replace("%", "%%"))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision.

    With an ``engine`` the migration runs on one of its connections, which keeps in-memory
    SQLite databases usable afterwards.
    """

    if engine is None:
        command.upgrade(build_config(database_uri or get_database_config().uri), "head")
        return
    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
