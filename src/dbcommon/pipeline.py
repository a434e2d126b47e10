"""Command execution pipeline.

Every query shape runs through one primitive, :meth:`CommandPipeline.execute`:

    1. create an unopened connection from the context's provider
    2. bind the template's positional arguments into a command
    3. open the connection
    4. run the shape-specific action on the command
    5. commit, unless the action started an explicit transaction
    6. on a driver error: log ``command.failed`` and re-raise unchanged
    7. close readers, then the connection -- on every exit path

Shapes built on top::

    select_all(projection, sql, *args)   → list[T]     rows projected in order
    select(projection, sql, *args)       → T | None    first row only
    scalar(type, sql, *args, default=)   → T           coerced first column
    execute_reader(callback, sql, *args) → True        callback gets the live reader
    execute_non_query(sql, *args)        → bool        rows affected > 0
    procedure(name, bind)                → dict        out-parameters by name

Projected rows are materialized before the reader is released; nothing
returned from here refers to a live cursor.

Only exceptions derived from the driver's DB-API ``Error`` class are
logged here.  Exceptions raised by projections or callbacks propagate
untouched, and the connection is still released.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from dbcommon.binding import bind_template
from dbcommon.command import Command, CommandType, DbConnection
from dbcommon.context import DatabaseContext
from dbcommon.convert import coerce
from dbcommon.logging import LogContext, get_logger
from dbcommon.rows import RowReader

logger = get_logger(__name__)

T = TypeVar("T")

Projection = Callable[[RowReader], T]
ReaderCallback = Callable[[RowReader], Any]
ParameterBinder = Callable[[Command], Any]


class CommandPipeline:
    """Runs commands against the connection described by a context."""

    def __init__(self, context: DatabaseContext) -> None:
        self.context = context

    def get_connection(self) -> DbConnection:
        """A new, unopened connection."""
        return self.context.create_connection()

    def create_command(self, connection: DbConnection, sql: str = "", *args: Any) -> Command:
        """Bind *args* into *sql* for the provider's paramstyle."""
        if not sql:
            return connection.create_command()
        text, params = bind_template(sql, args, self.context.provider.paramstyle)
        return connection.create_command(text, params)

    # -- Core primitive ----------------------------------------------------

    def execute(self, action: Callable[[Command], T], sql: str, *args: Any) -> T:
        """Run *action* on a command built from *sql* and *args*.

        Log lines emitted inside carry ``connection=<context name>``.
        """
        with LogContext(connection=self.context.name), self.get_connection() as connection:
            driver_error = self.context.provider.error
            with self.create_command(connection, sql, *args) as command:
                try:
                    connection.open()
                    result = action(command)
                    if not connection.in_transaction:
                        connection.commit()
                    return result
                except driver_error as e:
                    self._log_failure(command, e)
                    raise

    # -- Shapes ------------------------------------------------------------

    def select_all(self, projection: Projection[T], sql: str, *args: Any) -> list[T]:
        def action(command: Command) -> list[T]:
            with command.execute_reader() as reader:
                return [projection(row) for row in reader]

        return self.execute(action, sql, *args)

    def select(self, projection: Projection[T], sql: str, *args: Any) -> T | None:
        def action(command: Command) -> T | None:
            with command.execute_reader() as reader:
                return projection(reader) if reader.read() else None

        return self.execute(action, sql, *args)

    def scalar(self, target_type: type[T], sql: str, *args: Any, default: T | None = None) -> T | None:
        def action(command: Command) -> T | None:
            return coerce(command.execute_scalar(), target_type, default)

        return self.execute(action, sql, *args)

    def execute_reader(self, callback: ReaderCallback, sql: str, *args: Any) -> bool:
        def action(command: Command) -> bool:
            with command.execute_reader() as reader:
                callback(reader)
            return True

        return self.execute(action, sql, *args)

    def execute_non_query(self, sql: str, *args: Any) -> bool:
        return self.execute(lambda command: command.execute_non_query() > 0, sql, *args)

    def procedure(self, name: str, bind: ParameterBinder) -> dict[str, Any]:
        """Call stored procedure *name*.

        *bind* receives the command before the connection opens and
        declares its parameters with ``command.add_parameter(...)``.
        Returns ``{name: value}`` for every output and input/output
        parameter.
        """
        with LogContext(connection=self.context.name), self.get_connection() as connection:
            driver_error = self.context.provider.error
            with connection.create_command(name) as command:
                command.command_type = CommandType.STORED_PROCEDURE
                try:
                    bind(command)
                    connection.open()
                    outputs = command.execute_procedure()
                    if not connection.in_transaction:
                        connection.commit()
                    return outputs
                except driver_error as e:
                    self._log_failure(command, e)
                    raise

    # -- Diagnostics -------------------------------------------------------

    def _log_failure(self, command: Command, error: Exception) -> None:
        logger.error(
            "command.failed",
            sql=command.text,
            parameters=len(command.params or command.parameters),
            provider=self.context.provider.name,
            error=str(error),
        )


__all__ = [
    "CommandPipeline",
    "Projection",
    "ReaderCallback",
    "ParameterBinder",
]
