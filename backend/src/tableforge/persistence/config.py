"""Database configuration."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import URL

from tableforge.config import AppConfig

# Keys required when no database URL is configured
DATABASE_PART_KEYS = ("type", "host", "port", "name", "user", "password")

_DRIVERS = {
    "postgresql": "postgresql+psycopg",
}


@dataclass
class DatabaseConfig:
    """Database connection configuration.

    Supports sqlite:/// and postgresql:// URL schemes.
    """

    url: str

    @classmethod
    def from_config(cls, config: AppConfig, block: str = "database") -> DatabaseConfig:
        """Create config from a configuration block.

        Either ``<block>.url`` or all of type/host/port/name/user/password
        must be present.

        Raises:
            MissingConfigurationError: If neither form is complete
        """
        url = config.get(f"{block}.url")
        if url:
            return cls(url=url)

        keys = [f"{block}.{part}" for part in DATABASE_PART_KEYS]
        config.require(keys, dependent=block)
        db_type = str(config.get(f"{block}.type")).lower()
        return cls(
            url=URL.create(
                _DRIVERS.get(db_type, db_type),
                username=config.get(f"{block}.user"),
                password=config.get(f"{block}.password"),
                host=config.get(f"{block}.host"),
                port=int(config.get(f"{block}.port")),
                database=config.get(f"{block}.name"),
            ).render_as_string(hide_password=False)
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        Ensures postgresql:// URLs use the psycopg (v3) driver since
        the project depends on psycopg[binary], not psycopg2.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url
