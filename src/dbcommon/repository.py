"""Base class for application repositories.

Provides :class:`RepositoryBase`, which composes a
:class:`~dbcommon.pipeline.CommandPipeline` with an optional
:class:`~dbcommon.pagination.Paginator` so that domain repositories can
run positional SQL templates without touching connections, cursors or
driver modules.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       RepositoryBase                               │
    │                                                                    │
    │   context: DatabaseContext   ← process default or injected         │
    │   pipeline: CommandPipeline  ← open / bind / run / commit / close  │
    │   paginator: Paginator|None  ← provider dialect default            │
    │                                                                    │
    │   select_all(projection, sql, *args, page_filter=) → list[T]       │
    │   select(projection, sql, *args)                   → T | None      │
    │   scalar(type, sql, *args, default=)               → T             │
    │   execute_reader(callback, sql, *args)             → True          │
    │   execute(sql, *args)                              → bool          │
    │   procedure(name, bind)                            → dict          │
    │   get_connection() / begin_transaction(command)                    │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class ProductRepository(RepositoryBase):
    ...     def by_category(self, category: str, page: PaginationFilter):
    ...         return self.select_all(
    ...             to_product,
    ...             "SELECT * FROM products WHERE category = {0}",
    ...             category,
    ...             page_filter=page,
    ...         )

Tags:
    repository, database, composition, pagination, dbcommon
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

from dbcommon.binding import escape_template
from dbcommon.command import Command, DbConnection, Transaction
from dbcommon.context import DatabaseContext, get_default_context
from dbcommon.errors import NotSupportedError
from dbcommon.pagination import PaginationFilter, Paginator
from dbcommon.pipeline import CommandPipeline, ParameterBinder, Projection, ReaderCallback

T = TypeVar("T")


class RepositoryBase:
    """Query and execute surface shared by application repositories.

    Parameters:
        connection_name: Named connection to resolve as the process-wide
                         default on first use.  Empty selects the
                         configured default.  Ignored once a default has
                         been resolved.
        paginator: Query rewriter for ``page_filter``.  Defaults to the
                   paginator registered for the provider's dialect.
        context: Explicit context; bypasses the process-wide default.
        pipeline: Explicit pipeline; defaults to one built on *context*.
    """

    def __init__(
        self,
        connection_name: str = "",
        paginator: Paginator | None = None,
        *,
        context: DatabaseContext | None = None,
        pipeline: CommandPipeline | None = None,
    ) -> None:
        self.context: DatabaseContext = context or get_default_context(connection_name)
        self.pipeline = pipeline or CommandPipeline(self.context)
        self.paginator = paginator or self.context.default_paginator()

    # -- Connections -------------------------------------------------------

    def get_connection(self) -> DbConnection:
        """A new, unopened connection for the active configuration."""
        return self.pipeline.get_connection()

    def create_command(self, connection: DbConnection, sql: str = "", *args: Any) -> Command:
        return self.pipeline.create_command(connection, sql, *args)

    def begin_transaction(self, command: Command) -> Transaction:
        """Open *command*'s connection if needed and start a transaction.

        The transaction is attached to the command.  Commands run inside
        it are not committed automatically.
        """
        transaction = command.connection.begin_transaction()
        command.transaction = transaction
        return transaction

    # -- Queries -----------------------------------------------------------

    def paginate(self, sql: str, page_filter: PaginationFilter | None) -> str:
        """Rewrite the template *sql* for one page of *page_filter*.

        The result is still a template, so braces in ``order_by`` are
        escaped before the paginator splices the column in.
        """
        if page_filter is None or not page_filter.is_paged:
            return sql
        if self.paginator is None:
            raise NotSupportedError(
                f"No paginator for provider '{self.context.provider.name}'"
            ).with_context(connection_name=self.context.name, provider=self.context.provider.name)
        if page_filter.order_by:
            page_filter = replace(page_filter, order_by=escape_template(page_filter.order_by))
        return self.paginator.apply(sql, page_filter)

    def select_all(
        self,
        projection: Projection[T],
        sql: str,
        *args: Any,
        page_filter: PaginationFilter | None = None,
    ) -> list[T]:
        """Project every row of *sql*, optionally one page of it."""
        return self.pipeline.select_all(projection, self.paginate(sql, page_filter), *args)

    def select(self, projection: Projection[T], sql: str, *args: Any) -> T | None:
        return self.pipeline.select(projection, sql, *args)

    def scalar(self, target_type: type[T], sql: str, *args: Any, default: T | None = None) -> T | None:
        return self.pipeline.scalar(target_type, sql, *args, default=default)

    def execute_reader(self, callback: ReaderCallback, sql: str, *args: Any) -> bool:
        return self.pipeline.execute_reader(callback, sql, *args)

    def execute(self, sql: str, *args: Any) -> bool:
        """Run a non-query; ``True`` when at least one row was affected."""
        return self.pipeline.execute_non_query(sql, *args)

    def execute_command(self, action: Callable[[Command], T], sql: str, *args: Any) -> T:
        """Run a custom *action* through the pipeline."""
        return self.pipeline.execute(action, sql, *args)

    def procedure(self, name: str, bind: ParameterBinder) -> dict[str, Any]:
        return self.pipeline.procedure(name, bind)


__all__ = [
    "RepositoryBase",
]
