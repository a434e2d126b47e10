"""Dialect-aware pagination of arbitrary SELECT statements.

A :class:`Paginator` rewrites a query so it returns only one page of rows
for a :class:`PaginationFilter`.  The same filter works across dialects;
only the rewrite differs.

Manifesto:
    Repositories should not care whether the database speaks ``ROWNUM``,
    ``OFFSET … FETCH`` or ``LIMIT``.  They describe the page they want and
    the paginator picked for the active provider shapes the SQL.

    - **Opt-in:** no filter, or ``page_size <= 0``, leaves SQL untouched
    - **One method:** ``apply(sql, page_filter)`` is the whole contract
    - **Registry:** ``get_paginator(name)`` mirrors the provider names

Architecture::

    PaginationFilter(page=2, page_size=10, order_by="name", order=DESC)
        skip = 11   take = 21
                     │
        ┌────────────┼─────────────────────┬──────────────────────┐
        ▼            ▼                     ▼                      ▼
    RowNumPaginator          OffsetFetchPaginator        LimitOffsetPaginator
    (oracle)                 (oracle12c, db2)            (sqlite, postgresql, mysql)
    ROWNUM window            OFFSET 10 ROWS              LIMIT 10 OFFSET 10
                             FETCH NEXT 10 ROWS ONLY

Examples:
    >>> f = PaginationFilter(page=1, page_size=15, order_by="name")
    >>> RowNumPaginator().apply("SELECT * FROM products", f)
    'SELECT * FROM (SELECT v.*, ROWNUM rn FROM (SELECT * FROM products ORDER BY "NAME" ASC) v WHERE rownum <= 15) WHERE rn >= 0'

Guardrails:
    ❌ DON'T: Interpolate user-supplied sort columns yourself
    ✅ DO: Put them in ``order_by``; embedded quotes are escaped

Tags:
    pagination, sql, dialect, oracle, rownum, offset-fetch, dbcommon
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class Order(str, Enum):
    """Sort direction."""

    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class PaginationFilter:
    """Page window and sort specification for one query.

    ``page`` values of zero or below are treated as page 1.  ``skip`` is the
    1-based row number of the first row on the page (0 for the first page)
    and ``take`` is ``skip + page_size``.
    """

    page: int = 1
    page_size: int = 15
    order_by: str = ""
    order: Order = Order.ASC

    def __post_init__(self) -> None:
        if self.page <= 0:
            object.__setattr__(self, "page", 1)
        if not isinstance(self.order, Order):
            text = str(self.order).strip().upper()
            if text not in Order.__members__:
                raise ValueError(f"order must be ASC or DESC, got {self.order!r}")
            object.__setattr__(self, "order", Order[text])

    @property
    def skip(self) -> int:
        skip = (self.page - 1) * self.page_size
        if skip > 0:
            skip += 1
        return skip

    @property
    def take(self) -> int:
        return self.skip + self.page_size

    @property
    def offset(self) -> int:
        """Number of rows preceding the page (0-based)."""
        return (self.page - 1) * self.page_size

    @property
    def is_paged(self) -> bool:
        return self.page_size > 0


@runtime_checkable
class Paginator(Protocol):
    """Query rewriting contract. ``apply`` is the only required method."""

    def apply(self, sql: str, page_filter: PaginationFilter | None) -> str:
        ...


def order_by(
    sql: str,
    page_filter: PaginationFilter,
    *,
    quote: str = '"',
    uppercase: bool = True,
) -> str:
    """Append ``ORDER BY "<column>" <ASC|DESC>`` when ``order_by`` is set."""
    if not page_filter.order_by:
        return sql
    column = page_filter.order_by.upper() if uppercase else page_filter.order_by
    column = column.replace(quote, quote * 2)
    return f"{sql} ORDER BY {quote}{column}{quote} {page_filter.order.value}"


# =========================================================================
# Concrete Paginators
# =========================================================================


class RowNumPaginator:
    """Oracle ``ROWNUM`` window, for servers without ``OFFSET``/``FETCH``.

    Because ``skip`` is already 1-based past the first page, the inner bound
    is ``take - 1`` whenever ``skip > 0`` so each page holds exactly
    ``page_size`` rows.
    """

    name = "rownum"

    def apply(self, sql: str, page_filter: PaginationFilter | None) -> str:
        if page_filter is None or not page_filter.is_paged:
            return sql

        sql = order_by(sql, page_filter)
        skip = page_filter.skip
        upper = page_filter.take - 1 if skip > 0 else page_filter.take
        return (
            f"SELECT * FROM (SELECT v.*, ROWNUM rn FROM ({sql}) v "
            f"WHERE rownum <= {upper}) WHERE rn >= {skip}"
        )


class OffsetFetchPaginator:
    """ANSI ``OFFSET … ROWS FETCH NEXT … ROWS ONLY`` (Oracle 12c+, DB2)."""

    name = "offset_fetch"

    def __init__(self, *, quote: str = '"', uppercase: bool = True) -> None:
        self.quote = quote
        self.uppercase = uppercase

    def apply(self, sql: str, page_filter: PaginationFilter | None) -> str:
        if page_filter is None or not page_filter.is_paged:
            return sql

        sql = order_by(sql, page_filter, quote=self.quote, uppercase=self.uppercase)
        return (
            f"{sql} OFFSET {page_filter.offset} ROWS "
            f"FETCH NEXT {page_filter.page_size} ROWS ONLY"
        )


class LimitOffsetPaginator:
    """``LIMIT … OFFSET …`` (SQLite, PostgreSQL, MySQL).

    Identifiers keep their case: PostgreSQL folds unquoted names to lower
    case, so upper-casing a quoted column would miss it.
    """

    name = "limit_offset"

    def __init__(self, *, quote: str = '"', uppercase: bool = False) -> None:
        self.quote = quote
        self.uppercase = uppercase

    def apply(self, sql: str, page_filter: PaginationFilter | None) -> str:
        if page_filter is None or not page_filter.is_paged:
            return sql

        sql = order_by(sql, page_filter, quote=self.quote, uppercase=self.uppercase)
        return f"{sql} LIMIT {page_filter.page_size} OFFSET {page_filter.offset}"


# =========================================================================
# Registry
# =========================================================================

# Paginators are stateless after construction
_PAGINATORS: dict[str, Paginator] = {
    "oracle": RowNumPaginator(),
    "oracle12c": OffsetFetchPaginator(),
    "db2": OffsetFetchPaginator(),
    "sqlite": LimitOffsetPaginator(),
    "postgresql": LimitOffsetPaginator(),
    "postgres": LimitOffsetPaginator(),
    "mysql": LimitOffsetPaginator(quote="`"),
}


def get_paginator(name: str) -> Paginator:
    """Get the paginator registered for a dialect name.

    Raises:
        ValueError: If ``name`` is not registered.
    """
    key = name.lower()
    if key not in _PAGINATORS:
        raise ValueError(
            f"Unknown paginator '{name}'. Supported: {sorted(_PAGINATORS)}"
        )
    return _PAGINATORS[key]


def register_paginator(name: str, paginator: Paginator) -> None:
    """Register a custom paginator (lookup key is lower-cased)."""
    _PAGINATORS[name.lower()] = paginator


__all__ = [
    "Order",
    "PaginationFilter",
    "Paginator",
    "order_by",
    "RowNumPaginator",
    "OffsetFetchPaginator",
    "LimitOffsetPaginator",
    "get_paginator",
    "register_paginator",
]
