"""
Filter compiler
===============

Turns mongo-style filters into a SQLite ``WHERE`` clause over the JSON
``doc`` column.

    {"sid": "abc"}                            -> equality
    {"data.cookie._expires": {"$lt": now}}    -> comparison on a nested path

Field paths are validated and inlined as literals so that expression
indexes (see ``DocumentStore.ensure_index``) match the generated SQL.
Operand values are always bound as parameters.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from docsession.db.codec import DATE_KEY, escape_key, to_millis
from docsession.errors import QueryError

_SEGMENT = re.compile(r"^[A-Za-z0-9_$-]+$")

OPERATORS = {
    "$lt": "<",
    "$lte": "<=",
    "$gt": ">",
    "$gte": ">=",
    "$ne": "IS NOT",
}


def json_path(field: str) -> str:
    """Convert ``a.b.c`` into the SQLite JSON path ``$."a"."b"."c"``."""
    segments = field.split(".")
    for segment in segments:
        if not _SEGMENT.match(segment):
            raise QueryError(f"Invalid field path: {field!r}")
    return "$" + "".join(f'."{escape_key(s)}"' for s in segments)


def field_expr(field: str) -> str:
    return f"json_extract(doc, '{json_path(field)}')"


def _date_expr(field: str) -> str:
    # Tagged dates compare on their millisecond value; plain numbers compare as is.
    path = json_path(field)
    return f"COALESCE(json_extract(doc, '{path}.\"{DATE_KEY}\"'), json_extract(doc, '{path}'))"


def _operand(field: str, value: Any) -> tuple[str, Any]:
    if isinstance(value, datetime):
        return _date_expr(field), to_millis(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return field_expr(field), value
    raise QueryError(
        f"Unsupported operand for {field!r}: {type(value).__name__}"
    )


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(
        isinstance(k, str) and k.startswith("$") for k in cond
    )


def compile_filter(query: dict[str, Any] | None) -> tuple[str, list[Any]]:
    """Compile a filter into ``(where_sql, params)``.

    An empty or missing filter matches every document.
    """
    if not query:
        return "1", []

    clauses: list[str] = []
    params: list[Any] = []

    for field, cond in query.items():
        if _is_operator_dict(cond):
            for op, value in cond.items():
                if op not in OPERATORS:
                    raise QueryError(f"Unsupported operator {op!r} on {field!r}")
                expr, param = _operand(field, value)
                if param is None and op != "$ne":
                    raise QueryError(f"{op} needs a non-null operand on {field!r}")
                clauses.append(f"{expr} {OPERATORS[op]} ?")
                params.append(param)
        else:
            expr, param = _operand(field, cond)
            if param is None:
                clauses.append(f"{expr} IS NULL")
            else:
                clauses.append(f"{expr} = ?")
                params.append(param)

    return " AND ".join(clauses), params
