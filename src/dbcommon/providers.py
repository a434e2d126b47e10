"""Provider factories -- one per DB-API driver.

A :class:`ProviderFactory` is the opaque capability the rest of the layer
uses to reach a database: it opens raw driver connections from a
connection string, reports the driver's ``paramstyle`` and base ``Error``
class, and adapts procedure out-parameters.  Nothing outside this module
imports a driver.

Manifesto:
    Configuration names a provider, not a driver class.  Swapping
    ``oracle`` for ``postgresql`` in settings must not touch repository
    code, and a missing driver must fail with a clear install hint the
    first time it is needed -- not at import time.

Architecture::

    ProviderRegistry (singleton: provider_registry)
        sqlite / sqlite3        → sqlite3           (stdlib, always available)
        oracle / oracledb       → oracledb          pip install dbcommon[oracle]
        postgresql / postgres   → psycopg2          pip install dbcommon[postgresql]
        mysql                   → mysql.connector   pip install dbcommon[mysql]
        db2                     → ibm_db_dbi        pip install dbcommon[db2]

Guardrails:
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded on first use with a clear ProviderError

Tags:
    provider, driver, db-api, registry, factory, import-guarded, dbcommon
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit

from dbcommon.errors import ProviderError

if TYPE_CHECKING:
    from dbcommon.command import Parameter

ConnectFn = Callable[[Any, str, dict[str, Any]], Any]


def _connect_dsn(module: Any, connection_string: str, options: dict[str, Any]) -> Any:
    return module.connect(connection_string, **options)


class ProviderFactory:
    """Creates driver connections for one database dialect.

    Parameters:
        name: Provider name used in configuration.
        module_name: Importable DB-API 2.0 module (``"oracledb"``).
        dialect: Dialect name used to pick the default paginator.
        connect: ``connect(module, connection_string, options)`` override
                 for drivers that do not accept a single DSN argument.
        module: Pre-imported driver module (skips the lazy import).
        paramstyle: Override the module's ``paramstyle``.
        install_hint: Shown when the driver cannot be imported.
    """

    def __init__(
        self,
        name: str,
        module_name: str,
        dialect: str,
        *,
        connect: ConnectFn | None = None,
        module: Any = None,
        paramstyle: str | None = None,
        install_hint: str | None = None,
    ) -> None:
        self.name = name
        self.module_name = module_name
        self.dialect = dialect
        self._connect = connect or _connect_dsn
        self._module = module
        self._paramstyle = paramstyle
        self._install_hint = install_hint or f"pip install {module_name}"

    @property
    def module(self) -> Any:
        """The driver module, imported on first access."""
        if self._module is None:
            try:
                self._module = importlib.import_module(self.module_name)
            except ImportError as e:
                raise ProviderError(
                    self.name,
                    f"{self.module_name} is required for provider '{self.name}'. "
                    f"Install with: {self._install_hint}",
                    cause=e,
                ) from e
        return self._module

    @property
    def paramstyle(self) -> str:
        return self._paramstyle or getattr(self.module, "paramstyle", "qmark")

    @property
    def error(self) -> type[Exception]:
        """Base class of every exception the driver raises (DB-API ``Error``)."""
        return self.module.Error

    def connect(self, connection_string: str, options: Mapping[str, Any] | None = None) -> Any:
        """Open a raw driver connection."""
        return self._connect(self.module, connection_string, dict(options or {}))

    # -- Procedure out-parameters ------------------------------------------

    def output_variable(self, cursor: Any, parameter: Parameter) -> Any:
        """Value passed to ``callproc`` for a non-input *parameter*."""
        return parameter.value

    def output_value(self, value: Any) -> Any:
        """Post-call value of an out-parameter as returned by ``callproc``."""
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, module={self.module_name!r})"


class OracleProviderFactory(ProviderFactory):
    """``oracledb`` needs typed bind variables for out-parameters."""

    def output_variable(self, cursor: Any, parameter: Parameter) -> Any:
        var = cursor.var(parameter.db_type.python_type)
        if parameter.value is not None:
            var.setvalue(0, parameter.value)
        return var

    def output_value(self, value: Any) -> Any:
        return value.getvalue() if hasattr(value, "getvalue") else value


# =========================================================================
# Driver-specific connect functions
# =========================================================================


def _connect_sqlite(module: Any, connection_string: str, options: dict[str, Any]) -> Any:
    path = connection_string
    for prefix in ("sqlite:///", "sqlite://"):
        if path.startswith(prefix):
            path = path[len(prefix):]
            break
    path = path or ":memory:"
    options.setdefault("uri", path.startswith("file:"))
    return module.connect(path, **options)


def _connect_oracle(module: Any, connection_string: str, options: dict[str, Any]) -> Any:
    if "://" in connection_string:
        parts = urlsplit(connection_string)
        options.setdefault("user", unquote(parts.username or ""))
        options.setdefault("password", unquote(parts.password or ""))
        dsn = f"{parts.hostname}:{parts.port or 1521}{parts.path}"
        return module.connect(dsn=dsn, **options)
    return module.connect(dsn=connection_string, **options)


def _connect_mysql(module: Any, connection_string: str, options: dict[str, Any]) -> Any:
    if "://" in connection_string:
        parts = urlsplit(connection_string)
        kwargs: dict[str, Any] = {
            "host": parts.hostname or "localhost",
            "port": parts.port or 3306,
            "user": unquote(parts.username or ""),
            "password": unquote(parts.password or ""),
            "database": parts.path.lstrip("/"),
        }
    else:
        kwargs = {}
        for pair in connection_string.split(";"):
            if "=" in pair:
                key, value = pair.split("=", 1)
                kwargs[key.strip().lower()] = value.strip()
    kwargs.update(options)
    return module.connect(**kwargs)


def _connect_db2(module: Any, connection_string: str, options: dict[str, Any]) -> Any:
    return module.connect(connection_string, "", "", **options)


# =========================================================================
# Registry
# =========================================================================


class ProviderRegistry:
    """Registry of provider factories keyed by lower-cased provider name."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        sqlite = ProviderFactory("sqlite", "sqlite3", "sqlite", connect=_connect_sqlite)
        oracle = OracleProviderFactory(
            "oracle", "oracledb", "oracle",
            connect=_connect_oracle,
            install_hint="pip install dbcommon[oracle]",
        )
        postgresql = ProviderFactory(
            "postgresql", "psycopg2", "postgresql",
            install_hint="pip install dbcommon[postgresql]",
        )
        mysql = ProviderFactory(
            "mysql", "mysql.connector", "mysql",
            connect=_connect_mysql,
            install_hint="pip install dbcommon[mysql]",
        )
        db2 = ProviderFactory(
            "db2", "ibm_db_dbi", "db2",
            connect=_connect_db2,
            install_hint="pip install dbcommon[db2]",
        )

        self._factories["sqlite"] = sqlite
        self._factories["sqlite3"] = sqlite  # Alias
        self._factories["oracle"] = oracle
        self._factories["oracledb"] = oracle  # Alias
        self._factories["postgresql"] = postgresql
        self._factories["postgres"] = postgresql  # Alias
        self._factories["psycopg2"] = postgresql  # Alias
        self._factories["mysql"] = mysql
        self._factories["db2"] = db2

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Register a provider factory (custom drivers, test doubles)."""
        self._factories[name.lower()] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name.lower(), None)

    def get(self, name: str) -> ProviderFactory:
        key = (name or "").lower()
        if key not in self._factories:
            raise ProviderError(name, f"Unknown database provider: '{name}'")
        return self._factories[key]

    def list_providers(self) -> list[str]:
        return sorted(self._factories.keys())


# Global registry
provider_registry = ProviderRegistry()


def get_provider(name: str) -> ProviderFactory:
    """Look up a provider factory by name.

    Raises:
        ProviderError: No provider is registered under ``name``.
    """
    return provider_registry.get(name)


def register_provider(name: str, factory: ProviderFactory) -> None:
    provider_registry.register(name, factory)


__all__ = [
    "ProviderFactory",
    "OracleProviderFactory",
    "ProviderRegistry",
    "provider_registry",
    "get_provider",
    "register_provider",
]
