"""Forward-only row reader over a DB-API cursor.

:class:`RowReader` is what projection functions and reader callbacks
receive.  It is positioned on one row at a time and exposes typed column
access through :meth:`RowReader.get`, which combines column resolution
with :func:`~dbcommon.convert.coerce`:

- unknown column name or out-of-range index → caller's default, no
  coercion attempted;
- NULL column → ``coerce(None, ...)`` (first member for enums, default
  otherwise);
- anything else → ``coerce(value, ...)``.

Usage::

    def to_product(row: RowReader) -> Product:
        return Product(
            id=row.get("id", int, 0),
            name=row.get("name", str, ""),
            status=row.get("status", Status),
        )

Column names resolve exactly first and then case-insensitively, since
Oracle and DB2 report unquoted identifiers in upper case.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, TypeVar

from dbcommon.convert import coerce

T = TypeVar("T")


class RowReader:
    """Wraps a cursor that has already executed a row-returning statement.

    The reader owns the cursor: :meth:`close` (or leaving the ``with``
    block) closes it, after which the reader can no longer advance.
    """

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._row: tuple | None = None
        self._closed = False

        description = cursor.description or ()
        self._names: list[str] = [str(desc[0]) for desc in description]
        self._ordinals: dict[str, int] = {}
        self._folded: dict[str, int] = {}
        for index, name in enumerate(self._names):
            self._ordinals.setdefault(name, index)
            self._folded.setdefault(name.casefold(), index)

    # -- Schema ------------------------------------------------------------

    @property
    def columns(self) -> list[str]:
        """Column names in result order."""
        return list(self._names)

    @property
    def field_count(self) -> int:
        return len(self._names)

    @property
    def closed(self) -> bool:
        return self._closed

    def ordinal(self, name: str) -> int:
        """Index of column *name*.

        Raises:
            IndexError: No column has that name.
        """
        if name in self._ordinals:
            return self._ordinals[name]
        folded = name.casefold()
        if folded in self._folded:
            return self._folded[folded]
        raise IndexError(f"no column named {name!r}")

    # -- Navigation --------------------------------------------------------

    def read(self) -> bool:
        """Advance to the next row. Returns ``False`` when exhausted."""
        if self._closed:
            raise RuntimeError("reader is closed")
        row = self._cursor.fetchone()
        self._row = tuple(row) if row is not None else None
        return self._row is not None

    def __iter__(self) -> Iterator[RowReader]:
        while self.read():
            yield self

    # -- Value access ------------------------------------------------------

    def get_value(self, index: int) -> Any:
        """Raw value of column *index* on the current row."""
        if self._row is None:
            raise RuntimeError("reader is not positioned on a row")
        if not 0 <= index < len(self._row):
            raise IndexError(f"column index {index} out of range")
        return self._row[index]

    def is_null(self, index: int) -> bool:
        return self.get_value(index) is None

    def get(self, column: int | str, target_type: type[T] = object, default: T | None = None) -> T | None:
        """Typed value of *column* (index or name) on the current row."""
        try:
            index = column if isinstance(column, int) else self.ordinal(column)
            if self.is_null(index):
                return coerce(None, target_type, default)
            return coerce(self.get_value(index), target_type, default)
        except IndexError:
            return default

    def __getitem__(self, column: int | str) -> Any:
        index = column if isinstance(column, int) else self.ordinal(column)
        return self.get_value(index)

    def as_dict(self) -> dict[str, Any]:
        """Current row as ``{column: value}``."""
        if self._row is None:
            raise RuntimeError("reader is not positioned on a row")
        return dict(zip(self._names, self._row, strict=False))

    # -- Lifecycle ---------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._row = None
        self._cursor.close()

    def __enter__(self) -> RowReader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"RowReader(columns={self._names!r}, {state})"


__all__ = [
    "RowReader",
]
