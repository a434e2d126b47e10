"""Resolved database context and the process-wide default.

A :class:`DatabaseContext` is the injectable result of configuration
resolution: the chosen :class:`~dbcommon.settings.ConnectionConfig` plus
the :class:`~dbcommon.providers.ProviderFactory` for its provider.
Repositories take one explicitly, or fall back to the process-wide
default.

The default is resolved at most once per process.  The first caller's
connection name wins; later callers asking for another name get the
cached context and a ``database.context_reused`` warning.  Resolution is
guarded by a lock with a double check, so concurrent first use resolves
and logs exactly once.

Usage::

    from dbcommon.context import DatabaseContext, get_default_context

    ctx = get_default_context()                  # first configured entry
    ctx = DatabaseContext.resolve("reporting")   # explicit, not cached

Tags:
    configuration, context, singleton, thread-safe, dbcommon
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from dbcommon.command import DbConnection
from dbcommon.logging import get_logger, redact_connection_string
from dbcommon.pagination import Paginator, get_paginator
from dbcommon.providers import ProviderFactory, get_provider
from dbcommon.settings import ConnectionConfig, DbSettings, get_settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class DatabaseContext:
    """Connection configuration bound to its provider factory."""

    config: ConnectionConfig
    provider: ProviderFactory

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> DatabaseContext:
        """Bind *config* to its registered provider.

        Raises:
            ProviderError: The provider name is not registered.
        """
        return cls(config=config, provider=get_provider(config.provider_name))

    @classmethod
    def resolve(cls, name: str = "", settings: DbSettings | None = None) -> DatabaseContext:
        """Resolve *name* against *settings* (default: :func:`get_settings`)."""
        settings = settings or get_settings()
        return cls.from_config(settings.resolve(name))

    @property
    def name(self) -> str:
        return self.config.name

    def create_connection(self) -> DbConnection:
        """A new, unopened connection."""
        return DbConnection(self.provider, self.config.connection_string, self.config.options)

    def default_paginator(self) -> Paginator | None:
        """Paginator registered for the provider's dialect, if any."""
        try:
            return get_paginator(self.provider.dialect)
        except ValueError:
            return None


# ── Process-wide default ─────────────────────────────────────────────────

_default_context: DatabaseContext | None = None
_default_lock = threading.Lock()


def get_default_context(name: str = "", settings: DbSettings | None = None) -> DatabaseContext:
    """Return the process-wide context, resolving it on first use.

    Raises:
        ConfigError: First-use resolution failed.  Nothing is cached, so a
            later call resolves again.
    """
    global _default_context

    context = _default_context
    if context is None:
        with _default_lock:
            if _default_context is None:
                resolved = DatabaseContext.resolve(name, settings)
                logger.info(
                    "database.connection_resolved",
                    name=resolved.name,
                    connection=redact_connection_string(resolved.config.connection_string),
                    provider=resolved.config.provider_name,
                )
                _default_context = resolved
            context = _default_context

    if name and name != context.name:
        logger.warning("database.context_reused", requested=name, active=context.name)
    return context


def set_default_context(context: DatabaseContext | None) -> None:
    """Install *context* as the process-wide default (``None`` clears it)."""
    global _default_context
    with _default_lock:
        _default_context = context


def reset_default_context() -> None:
    """Forget the process-wide default (for tests)."""
    set_default_context(None)


__all__ = [
    "DatabaseContext",
    "get_default_context",
    "set_default_context",
    "reset_default_context",
]
