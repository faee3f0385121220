"""Where ratebook keeps its SQLite files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "ratebook"
DEFAULT_DB_FILENAME: Final[str] = "ratebook.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Data directory holding the rate database and the HTTP cache; created on first use."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    http_cache_filename: str = HTTP_CACHE_FILENAME

    def _file(self, name: str) -> Path:
        directory = self.data_dir.expanduser().resolve()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / name

    def database_path(self) -> Path:
        return self._file(self.database_filename)

    def http_cache_path(self) -> Path:
        return self._file(self.http_cache_filename)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = os.getenv("RATEBOOK_DATA_DIR")
    return StorageConfig(
        data_dir=Path(override) if override else _platform_data_home() / APP_DIR_NAME
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = os.getenv("DATABASE_URI")
    if not uri:
        path = (storage or get_storage_config()).database_path()
        uri = f"sqlite+pysqlite:///{path}"
    return DatabaseConfig(uri=uri)
