"""
Structured error types for dbcommon.

Only two kinds of failure ever cross the access-layer boundary:

- **Configuration errors** raised while resolving which connection is
  active.  These are fatal and never retried.
- **Driver errors** raised by the DB-API module itself.  These are logged
  by the execution pipeline and re-raised *unchanged*, so callers keep
  catching ``sqlite3.Error``, ``oracledb.DatabaseError`` and friends.

Coercion and column-resolution problems are absorbed locally and resolve
to the caller's default value; they have no exception type here.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────┐
        │                    DbCommonError                      │
        │          (category, context, cause)                   │
        ├──────────────────────────────────────────────────────┤
        │                                                       │
        │  ConfigError (CONFIG)         NotSupportedError       │
        │     │                         (DATABASE)              │
        │  MissingConnectionError                               │
        │  ProviderError                                        │
        └──────────────────────────────────────────────────────┘

Examples:
    >>> error = MissingConnectionError("reporting")
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.context.connection_name
    'reporting'

Guardrails:
    ❌ DON'T: Wrap driver exceptions in DbCommonError
    ✅ DO: Log them and let the original propagate

    ❌ DON'T: Raise from coercion helpers
    ✅ DO: Return the caller-supplied default

Tags:
    error-handling, exception-hierarchy, configuration, dbcommon
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Missing connection, unknown provider
    DATABASE = "DATABASE"         # Driver capability gaps
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a :class:`DbCommonError`.

    Only non-``None`` fields are emitted by :meth:`to_dict`, so the dict can
    be splatted straight into a structlog call.
    """

    connection_name: str | None = None
    provider: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["connection_name", "provider", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DbCommonError(Exception):
    """
    Base exception for all dbcommon errors.

    Subclasses set ``default_category``; callers may override it per
    instance.  Pass ``cause=`` when wrapping another exception so the chain
    is preserved.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DbCommonError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigError("Bad settings").with_context(provider="oracle")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if ctx := self.context.to_dict():
            result["context"] = ctx
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(DbCommonError):
    """Configuration error. Never retryable - settings must be fixed."""

    default_category = ErrorCategory.CONFIG


class MissingConnectionError(ConfigError):
    """No connection configuration matches the requested name."""

    def __init__(self, name: str, message: str | None = None):
        super().__init__(
            message or f"Can't find a connection string with the name '{name}'.",
            context=ErrorContext(connection_name=name),
        )
        self.name = name


class ProviderError(ConfigError):
    """Unknown provider name, or its driver module cannot be imported."""

    def __init__(self, provider: str, message: str, *, cause: Exception | None = None):
        super().__init__(message, context=ErrorContext(provider=provider), cause=cause)
        self.provider = provider


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class NotSupportedError(DbCommonError):
    """The selected driver does not offer a required capability."""

    default_category = ErrorCategory.DATABASE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DbCommonError",
    "ConfigError",
    "MissingConnectionError",
    "ProviderError",
    "NotSupportedError",
]
