"""Forgiving value coercion for raw column values.

Row values come straight from the driver and are not under the caller's
control: a column that used to be ``NUMBER`` may start returning strings,
an enum column may contain a name nobody declared.  :func:`coerce` turns
such values into the requested Python type and falls back to the caller's
default instead of raising, so row-mapping code stays a flat list of
``reader.get(...)`` calls.

Dispatch:
    ::

        coerce(value, target_type, default)
            │
            ├── Enum subclass ──► _to_enum   (None → first declared member)
            │
            └── anything else ──► singledispatch registry keyed on target_type
                                   str, int, float, Decimal, bool,
                                   datetime, date, <fallback: target_type(value)>

Examples:
    >>> class Color(Enum):
    ...     RED = 1
    ...     GREEN = 2
    >>> coerce(None, Color, Color.GREEN)
    <Color.RED: 1>
    >>> coerce("GREEN", Color)
    <Color.GREEN: 2>
    >>> coerce("purple", Color, Color.GREEN)
    <Color.GREEN: 2>
    >>> coerce("42", int)
    42
    >>> coerce("forty-two", int, -1)
    -1

Tags:
    conversion, coercion, enum, defaults, dbcommon
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any, TypeVar

T = TypeVar("T")

_TRUE_TEXT = "true"
_FALSE_TEXT = "false"


def coerce(value: Any, target_type: type[T], default: T | None = None) -> T | None:
    """Convert *value* to *target_type*, returning *default* on any failure.

    Enum targets parse the value's text as a member name (exact, case
    sensitive).  A ``None`` value is replaced by the first declared member
    name before parsing, so a NULL enum column yields the first member
    regardless of *default*.  Integer text is accepted for enums whose
    values are all integers.  Anything else returns *default*.

    Every other target goes through the converter registered for it (see
    :func:`register_converter`).  ``None`` is never convertible to a scalar
    and yields *default*.

    This function never raises.
    """
    if isinstance(target_type, type) and issubclass(target_type, Enum):
        return _to_enum(value, target_type, default)

    if value is None:
        return default
    if type(value) is target_type:
        return value

    try:
        return _convert.dispatch(target_type)(value, target_type)
    except Exception:
        return default


def register_converter(target_type: type, converter: Callable[[Any, type], Any]) -> None:
    """Register *converter* for *target_type* (and its subclasses).

    ``converter(value, target_type)`` receives a non-``None`` value and
    should raise on failure; :func:`coerce` maps any exception to the
    caller's default.
    """
    _convert.register(target_type, converter)


# =========================================================================
# Enum parsing
# =========================================================================


def _to_enum(value: Any, enum_type: type[Enum], default: Any) -> Any:
    if isinstance(value, enum_type):
        return value

    if value is None:
        names = list(enum_type.__members__)
        if not names:
            return default
        value = names[0]

    text = value.name if isinstance(value, Enum) else str(value).strip()
    member = enum_type.__members__.get(text)
    if member is not None:
        return member

    # Numeric text such as "2" for an int-valued enum
    if not all(isinstance(item.value, int) for item in enum_type):
        return default
    try:
        return enum_type(int(text))
    except ValueError:
        return default


# =========================================================================
# Scalar converters
# =========================================================================


@singledispatch
def _convert(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    return target_type(value)


@_convert.register(str)
def _to_str(value: Any, target_type: type) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


@_convert.register(int)
def _to_int(value: Any, target_type: type) -> int:
    if isinstance(value, (float, Decimal)):
        # Round half to even, like the database drivers' own numeric casts
        return int(round(value))
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


@_convert.register(float)
def _to_float(value: Any, target_type: type) -> float:
    return float(value)


@_convert.register(Decimal)
def _to_decimal(value: Any, target_type: type) -> Decimal:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    return Decimal(value)


@_convert.register(bool)
def _to_bool(value: Any, target_type: type) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text == _TRUE_TEXT:
            return True
        if text == _FALSE_TEXT:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    raise TypeError(f"cannot convert {type(value).__name__} to bool")


@_convert.register(datetime)
def _to_datetime(value: Any, target_type: type) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to datetime")


@_convert.register(date)
def _to_date(value: Any, target_type: type) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip()).date()
    raise TypeError(f"cannot convert {type(value).__name__} to date")


__all__ = [
    "coerce",
    "register_converter",
]
