"""Named connection configuration.

The configuration source is a set of named entries::

    {name → {connection_string, provider_name, options}}

read from environment variables, a ``.env`` file or a TOML file.  The
first entry declared is the default when no name is requested.

Examples:
    TOML (``dbcommon.toml``)::

        default_connection = "main"

        [connections.main]
        connection_string = "scott/tiger@dbhost:1521/orcl"
        provider_name = "oracle"

        [connections.main.options]
        tcp_connect_timeout = 5

        [connections.reporting]
        connection_string = "sqlite:///data/reporting.db"
        provider_name = "sqlite"

    Environment::

        DBCOMMON_CONNECTIONS__MAIN__CONNECTION_STRING=scott/tiger@dbhost/orcl
        DBCOMMON_CONNECTIONS__MAIN__PROVIDER_NAME=oracle

    >>> settings = DbSettings.from_toml("dbcommon.toml")
    >>> settings.resolve("").name
    'main'

``options`` are handed to the driver's ``connect()`` untouched, which is
where connect and call timeouts belong.

Requires ``pydantic-settings``.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbcommon.errors import ConfigError, MissingConnectionError

CONFIG_FILE_ENV = "DBCOMMON_CONFIG_FILE"


@dataclass(frozen=True)
class ConnectionConfig:
    """The resolved, immutable configuration of one named connection."""

    name: str
    connection_string: str
    provider_name: str
    options: dict[str, Any] = field(default_factory=dict, hash=False)


class ConnectionEntry(BaseModel):
    """One named entry in the configuration source."""

    connection_string: str
    provider_name: str = ""
    options: dict[str, Any] = Field(default_factory=dict)


class DbSettings(BaseSettings):
    """dbcommon configuration.

    All fields can be set via ``DBCOMMON_*`` environment variables, a
    ``.env`` file, or :meth:`from_toml`.
    """

    model_config = SettingsConfigDict(
        env_prefix="DBCOMMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Connections ──────────────────────────────────────────────
    connections: dict[str, ConnectionEntry] = Field(default_factory=dict)
    default_connection: str = Field(default="", description="Used when no name is requested")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console", "auto"] = Field(
        default="auto", description="auto: JSON unless stdout is a terminal"
    )

    @classmethod
    def from_toml(cls, path: str | Path) -> DbSettings:
        """Load settings from a TOML file, preserving connection order."""
        data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
        return cls(**data)

    def resolve(self, name: str = "") -> ConnectionConfig:
        """Resolve a connection by *name*.

        An empty name selects ``default_connection`` if set, otherwise the
        first configured entry.

        Raises:
            MissingConnectionError: No entry matches, or none are configured.
            ConfigError: The entry does not name a provider.
        """
        if not name:
            name = self.default_connection or next(iter(self.connections), "")
            if not name:
                raise MissingConnectionError("", "No connection strings are configured.")

        entry = self.connections.get(name)
        if entry is None:
            raise MissingConnectionError(name)
        if not entry.provider_name:
            raise ConfigError(
                f"Connection string '{name}' does not name a provider."
            ).with_context(connection_name=name)

        return ConnectionConfig(
            name=name,
            connection_string=entry.connection_string,
            provider_name=entry.provider_name,
            options=dict(entry.options),
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DbSettings] = {}


def get_settings(path: str | Path | None = None, *, _force_reload: bool = False) -> DbSettings:
    """Load and cache settings.

    Parameters
    ----------
    path:
        TOML file to read.  Defaults to ``$DBCOMMON_CONFIG_FILE``; when
        neither is set, settings come from the environment and ``.env``.
    _force_reload:
        Bypass cache and reload.
    """
    path = path or os.environ.get(CONFIG_FILE_ENV)
    cache_key = str(Path(path).resolve()) if path else ""

    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    settings = DbSettings.from_toml(path) if path else DbSettings()
    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop cached settings (for tests)."""
    _settings_cache.clear()


__all__ = [
    "ConnectionConfig",
    "ConnectionEntry",
    "DbSettings",
    "get_settings",
    "clear_settings_cache",
    "CONFIG_FILE_ENV",
]
