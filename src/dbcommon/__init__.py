"""dbcommon -- a small data-access layer over DB-API drivers.

Manifesto:
    Application repositories should write SQL, name the columns they want
    and describe the page they need.  Opening and releasing connections,
    binding arguments, shaping pagination for the active dialect and
    logging driver failures happen once, here.

Architecture::

    Layer 1 -- Values and errors
        errors.py       DbCommonError hierarchy (ConfigError, ProviderError, ...)
        logging.py      structlog configuration, redaction of secrets
        convert.py      coerce(value, type, default) with enum handling

    Layer 2 -- Driver plumbing
        providers.py    ProviderFactory registry (sqlite, oracle, postgresql, ...)
        binding.py      {0}-style templates -> bound parameters per paramstyle
        rows.py         RowReader over a DB-API cursor
        command.py      DbConnection / Command / Parameter / Transaction

    Layer 3 -- Access layer
        settings.py     Named connections from env, .env or TOML
        context.py      Resolved configuration, process-wide default
        pagination.py   PaginationFilter + ROWNUM / OFFSET / LIMIT paginators
        pipeline.py     CommandPipeline: open, run, commit, log, close
        repository.py   RepositoryBase for application repositories

Tags:
    database, repository, db-api, pagination, dbcommon
"""

__version__ = "0.1.0"

from dbcommon.command import (
    Command,
    CommandType,
    ConnectionState,
    DbConnection,
    DbType,
    Parameter,
    ParameterDirection,
    Transaction,
)
from dbcommon.context import (
    DatabaseContext,
    get_default_context,
    reset_default_context,
    set_default_context,
)
from dbcommon.convert import coerce, register_converter
from dbcommon.errors import (
    ConfigError,
    DbCommonError,
    ErrorCategory,
    MissingConnectionError,
    NotSupportedError,
    ProviderError,
)
from dbcommon.pagination import (
    LimitOffsetPaginator,
    OffsetFetchPaginator,
    Order,
    PaginationFilter,
    Paginator,
    RowNumPaginator,
    get_paginator,
    register_paginator,
)
from dbcommon.pipeline import CommandPipeline
from dbcommon.providers import ProviderFactory, get_provider, register_provider
from dbcommon.repository import RepositoryBase
from dbcommon.rows import RowReader
from dbcommon.settings import ConnectionConfig, DbSettings, get_settings

__all__ = [
    "__version__",
    # command
    "Command",
    "CommandType",
    "ConnectionState",
    "DbConnection",
    "DbType",
    "Parameter",
    "ParameterDirection",
    "Transaction",
    # context
    "DatabaseContext",
    "get_default_context",
    "reset_default_context",
    "set_default_context",
    # convert
    "coerce",
    "register_converter",
    # errors
    "ConfigError",
    "DbCommonError",
    "ErrorCategory",
    "MissingConnectionError",
    "NotSupportedError",
    "ProviderError",
    # pagination
    "LimitOffsetPaginator",
    "OffsetFetchPaginator",
    "Order",
    "PaginationFilter",
    "Paginator",
    "RowNumPaginator",
    "get_paginator",
    "register_paginator",
    # pipeline / repository
    "CommandPipeline",
    "RepositoryBase",
    "RowReader",
    # providers
    "ProviderFactory",
    "get_provider",
    "register_provider",
    # settings
    "ConnectionConfig",
    "DbSettings",
    "get_settings",
]
