"""Positional SQL templates → bound driver parameters.

Repository code writes templates with positional fields::

    "SELECT * FROM products WHERE id = {0} AND status = {1}"

The values are never formatted into the SQL text.  Each field is replaced
by the placeholder the driver expects (its DB-API ``paramstyle``) and the
values travel separately as bind parameters:

==========  ===============================  ==========================
paramstyle  SQL                              params
==========  ===============================  ==========================
qmark       ``id = ? AND status = ?``        ``(5, 'A')``
numeric     ``id = :1 AND status = :2``      ``(5, 'A')``
named       ``id = :p0 AND status = :p1``    ``{'p0': 5, 'p1': 'A'}``
format      ``id = %s AND status = %s``      ``(5, 'A')``
pyformat    ``id = %(p0)s AND status = %(p1)s``  ``{'p0': 5, 'p1': 'A'}``
==========  ===============================  ==========================

``{{`` and ``}}`` produce literal braces whether or not arguments are
supplied, so SQL containing braces (JSON literals, for example) escapes
them.  Text spliced into a template after the fact goes through
:func:`escape_template` first.
"""

from __future__ import annotations

import string
from collections.abc import Sequence
from typing import Any

PARAMSTYLES = ("qmark", "numeric", "named", "format", "pyformat")

_FORMATTER = string.Formatter()


def bind_template(
    sql: str,
    args: Sequence[Any],
    paramstyle: str,
) -> tuple[str, tuple[Any, ...] | dict[str, Any]]:
    """Translate a positional template into ``(sql, params)`` for *paramstyle*.

    Raises:
        ValueError: Unknown paramstyle, a named field, or a format spec.
        IndexError: A field refers to an argument that was not supplied.
    """
    if paramstyle not in PARAMSTYLES:
        raise ValueError(f"Unknown paramstyle '{paramstyle}'. Supported: {list(PARAMSTYLES)}")
    parsed = list(_FORMATTER.parse(sql))
    # Drivers only interpolate %-markers when parameters are sent
    escape_percent = paramstyle in ("format", "pyformat") and any(
        field_name is not None for _, field_name, _, _ in parsed
    )
    by_name = paramstyle in ("named", "pyformat")

    pieces: list[str] = []
    ordered: list[Any] = []
    named: dict[str, Any] = {}
    auto_index = 0

    for literal, field_name, format_spec, conversion in parsed:
        if literal:
            pieces.append(literal.replace("%", "%%") if escape_percent else literal)
        if field_name is None:
            continue

        if field_name == "":
            index = auto_index
            auto_index += 1
        elif field_name.isdigit():
            index = int(field_name)
        else:
            raise ValueError(f"Only positional fields are supported, got '{{{field_name}}}'")
        if format_spec or conversion:
            raise ValueError(f"Format specs are not supported for bound field {{{field_name}}}")
        if index >= len(args):
            raise IndexError(
                f"Template field {{{index}}} has no argument ({len(args)} supplied)"
            )

        if by_name:
            key = f"p{index}"
            named[key] = args[index]
            pieces.append(f":{key}" if paramstyle == "named" else f"%({key})s")
        else:
            ordered.append(args[index])
            if paramstyle == "qmark":
                pieces.append("?")
            elif paramstyle == "numeric":
                pieces.append(f":{len(ordered)}")
            else:
                pieces.append("%s")

    params: tuple[Any, ...] | dict[str, Any] = named if named else tuple(ordered)
    return "".join(pieces), params


def escape_template(text: str) -> str:
    """Double braces so *text* survives :func:`bind_template` literally."""
    return text.replace("{", "{{").replace("}", "}}")


__all__ = [
    "PARAMSTYLES",
    "bind_template",
    "escape_template",
]
