"""Connections, commands and parameters over a DB-API driver.

DB-API connections are open from the moment they exist.  The access layer
needs a connection object it can build up front, hand to a command, and
open and release on its own schedule, so :class:`DbConnection` wraps the
driver connection with an explicit ``open()`` / ``close()`` lifecycle.

Architecture::

    ProviderFactory ──connect()──► raw driver connection
            ▲                             ▲
            │                             │ (while OPEN)
    DbConnection(state, transaction) ─────┘
            │ create_command()
            ▼
    Command(text, params, parameters, command_type)
        execute_reader()     → RowReader   (owns its cursor)
        execute_scalar()     → first column of first row
        execute_non_query()  → rows affected
        execute_procedure()  → {out-parameter name: value}

Every cursor a command opens is closed before the call returns, except
the reader's, which the command closes when it is itself closed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from dbcommon.errors import NotSupportedError
from dbcommon.providers import ProviderFactory
from dbcommon.rows import RowReader


class ConnectionState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class CommandType(str, Enum):
    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


class ParameterDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"


class DbType(str, Enum):
    """Declared type of a procedure parameter."""

    STRING = "string"
    INT = "int"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    BINARY = "binary"

    @property
    def python_type(self) -> type:
        return _PYTHON_TYPES[self]


_PYTHON_TYPES: dict[DbType, type] = {
    DbType.STRING: str,
    DbType.INT: int,
    DbType.DECIMAL: Decimal,
    DbType.FLOAT: float,
    DbType.BOOLEAN: bool,
    DbType.DATE: date,
    DbType.DATETIME: datetime,
    DbType.BINARY: bytes,
}


@dataclass
class Parameter:
    """A named, typed, directioned procedure parameter."""

    name: str
    value: Any = None
    db_type: DbType = DbType.STRING
    direction: ParameterDirection = ParameterDirection.INPUT

    @property
    def is_input(self) -> bool:
        return self.direction is ParameterDirection.INPUT


# =========================================================================
# Connection
# =========================================================================


class DbConnection:
    """A not-yet-opened connection to one database.

    Use as a context manager to guarantee release; entering does *not*
    open the connection.
    """

    def __init__(
        self,
        provider: ProviderFactory,
        connection_string: str,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        self.provider = provider
        self.connection_string = connection_string
        self._options = dict(options or {})
        self._raw: Any = None
        self._transaction: Transaction | None = None

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.OPEN if self._raw is not None else ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._raw is not None

    @property
    def raw(self) -> Any:
        """The underlying driver connection (only while open)."""
        if self._raw is None:
            raise RuntimeError("connection is not open")
        return self._raw

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def open(self) -> None:
        """Open the driver connection. No-op when already open."""
        if self._raw is None:
            self._raw = self.provider.connect(self.connection_string, self._options)

    def close(self) -> None:
        """Close the driver connection if it is open."""
        if self._raw is None:
            return
        raw, self._raw = self._raw, None
        self._transaction = None
        raw.close()

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    def create_command(
        self,
        text: str = "",
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Command:
        return Command(self, text, params)

    def begin_transaction(self) -> Transaction:
        """Open the connection if needed and start a transaction on it."""
        if self._transaction is not None:
            raise RuntimeError("a transaction is already in progress on this connection")
        self.open()
        self._transaction = Transaction(self)
        return self._transaction

    def _end_transaction(self, transaction: Transaction) -> None:
        if self._transaction is transaction:
            self._transaction = None

    def __enter__(self) -> DbConnection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DbConnection(provider={self.provider.name!r}, state={self.state.value})"


class Transaction:
    """Explicit transaction on a :class:`DbConnection`.

    As a context manager it commits on success and rolls back when the
    block raises.
    """

    def __init__(self, connection: DbConnection) -> None:
        self.connection = connection
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def commit(self) -> None:
        self._finish(self.connection.commit)

    def rollback(self) -> None:
        self._finish(self.connection.rollback)

    def _finish(self, action: Any) -> None:
        if self._completed:
            raise RuntimeError("transaction already completed")
        try:
            action()
        finally:
            self._completed = True
            self.connection._end_transaction(self)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._completed:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


# =========================================================================
# Command
# =========================================================================


class Command:
    """SQL text (or procedure name) plus parameters, bound to a connection."""

    def __init__(
        self,
        connection: DbConnection,
        text: str = "",
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> None:
        self.connection = connection
        self.text = text
        self.params = params
        self.command_type = CommandType.TEXT
        self.parameters: list[Parameter] = []
        self.transaction: Transaction | None = None
        self._readers: list[RowReader] = []

    def add_parameter(
        self,
        name: str,
        value: Any = None,
        db_type: DbType = DbType.STRING,
        direction: ParameterDirection = ParameterDirection.INPUT,
    ) -> Parameter:
        parameter = Parameter(name, value, db_type, direction)
        self.parameters.append(parameter)
        return parameter

    # -- Execution ---------------------------------------------------------

    def _run(self, cursor: Any) -> None:
        if self.params:
            cursor.execute(self.text, self.params)
        else:
            cursor.execute(self.text)

    def execute_reader(self) -> RowReader:
        cursor = self.connection.raw.cursor()
        try:
            self._run(cursor)
        except BaseException:
            cursor.close()
            raise
        reader = RowReader(cursor)
        self._readers.append(reader)
        return reader

    def execute_scalar(self) -> Any:
        cursor = self.connection.raw.cursor()
        try:
            self._run(cursor)
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            cursor.close()

    def execute_non_query(self) -> int:
        cursor = self.connection.raw.cursor()
        try:
            self._run(cursor)
            return cursor.rowcount
        finally:
            cursor.close()

    def execute_procedure(self) -> dict[str, Any]:
        """Call procedure ``text`` with :attr:`parameters`.

        Returns every non-input parameter's post-call value by name; the
        same values are written back to the :class:`Parameter` objects.
        """
        provider = self.connection.provider
        cursor = self.connection.raw.cursor()
        try:
            callproc = getattr(cursor, "callproc", None)
            if callproc is None:
                raise NotSupportedError(
                    f"Provider '{provider.name}' does not support stored procedures"
                ).with_context(provider=provider.name)

            args = [
                p.value if p.is_input else provider.output_variable(cursor, p)
                for p in self.parameters
            ]
            result = callproc(self.text, args)
            if result is None:
                result = args

            outputs: dict[str, Any] = {}
            for parameter, value in zip(self.parameters, result, strict=False):
                if parameter.is_input:
                    continue
                parameter.value = provider.output_value(value)
                outputs[parameter.name] = parameter.value
            return outputs
        finally:
            cursor.close()

    # -- Lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Close every reader this command produced."""
        readers, self._readers = self._readers, []
        for reader in readers:
            reader.close()

    def __enter__(self) -> Command:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Command(text={self.text!r}, type={self.command_type.value})"


__all__ = [
    "ConnectionState",
    "CommandType",
    "ParameterDirection",
    "DbType",
    "Parameter",
    "DbConnection",
    "Transaction",
    "Command",
]
