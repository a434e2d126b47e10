"""
Structured logging for dbcommon.

The access layer produces exactly two kinds of diagnostic lines: a one-time
summary when the process-wide connection is resolved, and one record per
failed command.  Both go through structlog so applications can render them
as JSON for aggregation or as colored console output during development.

Architecture:
    ::

        configure_logging(level=None, json_format=None, service="dbcommon")
            │   None → DbSettings.log_level / DbSettings.log_format
            │
            ▼
        structlog processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars
          3. add_log_level / add_logger_name
          4. service.name
          5. ECS field names (JSON only)
          6. JSONRenderer | ConsoleRenderer

        logger = get_logger(__name__)
        logger.error("command.failed", sql="SELECT ...", error="ORA-00942")

        with LogContext(connection="main"):   ← pipeline binds this per call
            ...

Examples:
    >>> from dbcommon.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("database.connection_resolved", name="main")

    >>> redact_connection_string("oracle://scott:tiger@db:1521/orcl")
    'oracle://scott:***REDACTED***@db:1521/orcl'

Guardrails:
    ❌ DON'T: Log raw connection strings
    ✅ DO: Pass them through redact_connection_string() first

Tags:
    logging, structlog, observability, json-logging, dbcommon
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from dbcommon.settings import get_settings

_REDACTED = "***REDACTED***"

# key=value pairs in ADO / ODBC / libpq style strings
_SECRET_PAIR_RE = re.compile(r"(?i)\b(password|pwd)(\s*=\s*)([^;\s]*)")
# user:password@ in URL style strings
_URL_PASSWORD_RE = re.compile(r"(://[^:/@\s]+:)([^@\s]*)(@)")
# Oracle EZConnect user/password@dsn
_SLASH_PASSWORD_RE = re.compile(r"^([^/@:\s]+/)([^@\s]+)(@)")


def _service_metadata(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service


def _ecs_field_names(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename ``timestamp``/``level`` to their ECS names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    service: str = "dbcommon",
) -> None:
    """Configure structlog output for the access layer's events.

    Args:
        level: Log level name.  ``None`` takes ``DbSettings.log_level``.
        json_format: True for JSON, False for console.  ``None`` takes
            ``DbSettings.log_format``, where ``auto`` means JSON unless
            stdout is a terminal.
        service: Value of the ``service.name`` field.
    """
    if level is None or json_format is None:
        settings = get_settings()
        level = level or settings.log_level
        if json_format is None:
            if settings.log_format == "auto":
                json_format = not sys.stdout.isatty()
            else:
                json_format = settings.log_format == "json"

    numeric_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _service_metadata(service),
    ]

    if json_format:
        processors += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind correlation fields to every log line emitted inside the block.

    Fields already bound under the same keys are restored on exit, so
    contexts nest::

        with LogContext(connection="main"):
            with LogContext(connection="reporting"):
                ...
            # connection is "main" again
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = fields
        self._tokens: Mapping[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *exc_info: object) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


def redact_connection_string(value: str) -> str:
    """Mask passwords in a connection string before it is logged.

    Handles ``Password=...;`` pairs, ``scheme://user:pw@host`` URLs and
    Oracle ``user/pw@dsn`` strings.  Anything else is returned unchanged.
    """
    if not value:
        return value
    value = _SECRET_PAIR_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{_REDACTED}", value)
    value = _URL_PASSWORD_RE.sub(lambda m: f"{m.group(1)}{_REDACTED}{m.group(3)}", value)
    return _SLASH_PASSWORD_RE.sub(lambda m: f"{m.group(1)}{_REDACTED}{m.group(3)}", value)


__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "redact_connection_string",
]
