"""Application configuration document.

The configuration is a structured key/value document read once at
startup, normally from YAML. Nested keys are addressed with dots
(``"filesystem.root_url"``).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable

import yaml

from tableforge.errors import MissingConfigurationError

_MISSING = object()

# System table names, overridable under the ``tables`` key
DEFAULT_TABLES = {
    "files": "directus_files",
    "messages": "directus_messages",
    "users": "directus_users",
    "groups": "directus_groups",
    "privileges": "directus_privileges",
    "tables": "directus_tables",
    "settings": "directus_settings",
}

DEFAULT_SESSION_PREFIX = "directus_"


class AppConfig:
    """Read-only view over the configuration document."""

    def __init__(self, data: dict[str, Any] | None = None, source: Path | None = None):
        self._data: dict[str, Any] = dict(data or {})
        self.source = source

    @classmethod
    def load(cls, path: Path | str) -> AppConfig:
        """Load configuration from a YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {path}")
        return cls(data, source=path)

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> AppConfig:
        """Create config from the environment.

        Resolution order:
        1. TABLEFORGE_CONFIG env var (path to a YAML file)
        2. {base_path}/config/tableforge.yaml
        3. Empty configuration

        DATABASE_URL, when set, overrides ``database.url``.
        """
        config_path = os.environ.get("TABLEFORGE_CONFIG")
        if config_path:
            config = cls.load(config_path)
        elif base_path and (base_path / "config" / "tableforge.yaml").exists():
            config = cls.load(base_path / "config" / "tableforge.yaml")
        else:
            config = cls()

        url = os.environ.get("DATABASE_URL")
        if url:
            database = dict(config._data.get("database") or {})
            database["url"] = url
            config._data["database"] = database

        return config

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def require(self, keys: str | Iterable[str], dependent: str | None = None) -> None:
        """Fail fast if any of ``keys`` is absent.

        Raises:
            MissingConfigurationError: naming every missing key
        """
        if isinstance(keys, str):
            keys = [keys]
        missing = [key for key in keys if not self.has(key)]
        if missing:
            raise MissingConfigurationError(missing, dependent)

    def section(self, key: str) -> dict[str, Any]:
        """Return a nested block as a plain dict (empty if absent)."""
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def table(self, role: str) -> str:
        """Name of a system table (``files``, ``users``, ...)."""
        return self.get(f"tables.{role}", DEFAULT_TABLES[role])

    @property
    def application_path(self) -> Path | None:
        path = self.get("application_path")
        return Path(path) if path else None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __getitem__(self, key: str) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node
