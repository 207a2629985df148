"""SQL fragments shared by the query, update and delete steps.

``combined_condition`` renders everything after the table name: the WHERE
clause (primary-key conditions from the record, caller conditions, the
soft-delete filter) and, for queries, ORDER BY / LIMIT / OFFSET. Values are
bound left to right through ``add_to_vars`` so numbered placeholders
(``$1``, ``$2``) line up with ``ctx.sql_vars``.

Caller conditions take four shapes::

    db.where("age > ? AND name IN (?)", 18, ["a", "b"])   # text, ? expanded
    db.where({"name": "jinzhu", "age": None})             # column equality
    db.where(10)                                           # primary key
    db.where([1, 2, 3])                                    # primary key IN
"""

from __future__ import annotations

import re
from typing import Any

from spineorm.core.errors import UsageError
from spineorm.engine.context import OperationContext
from spineorm.engine.scope import (
    add_to_vars,
    primary_fields,
    query_field_name,
    quote,
    quoted_table_name,
)
from spineorm.model.struct import is_record

SOFT_DELETE_COLUMN = "deleted_at"


# Single-quoted literals ('' escapes a quote) are matched whole and kept as is
_BIND_MARK = re.compile(r"'(?:[^']|'')*'|\?")


def expand_placeholders(ctx: OperationContext, text: str, args: tuple[Any, ...]) -> str:
    """Replace each ``?`` in ``text`` with a bound placeholder.

    A list or tuple argument expands to a comma-separated placeholder list.
    Text without arguments is returned untouched, and a ``?`` inside a quoted
    literal is never a placeholder.
    """
    if not args or "?" not in text:
        return text
    pending = list(args)

    def bind(match: re.Match[str]) -> str:
        if match.group() != "?":
            return match.group()
        if not pending:
            raise UsageError(f"not enough arguments for condition {text!r}")
        arg = pending.pop(0)
        if isinstance(arg, list | tuple):
            return ", ".join(add_to_vars(ctx, v) for v in arg)
        return add_to_vars(ctx, arg)

    return _BIND_MARK.sub(bind, text)


def _equality(ctx: OperationContext, column: str, value: Any) -> str:
    name = f"{query_field_name(ctx)}{quote(ctx, column)}"
    if value is None:
        return f"{name} IS NULL"
    return f"{name} = {add_to_vars(ctx, value)}"


def _primary_column(ctx: OperationContext) -> str:
    struct = ctx.model.primary_field
    if struct is None:
        raise UsageError(f"{ctx.model.model_type.__name__} has no primary key")
    return f"{query_field_name(ctx)}{quote(ctx, struct.db_name)}"


def build_condition(ctx: OperationContext, query: Any, args: tuple[Any, ...]) -> str:
    if isinstance(query, str):
        return f"({expand_placeholders(ctx, query, args)})"
    if isinstance(query, dict):
        parts = [_equality(ctx, column, value) for column, value in query.items()]
        return f"({' AND '.join(parts)})"
    if isinstance(query, list | tuple):
        marks = ", ".join(add_to_vars(ctx, v) for v in query)
        return f"({_primary_column(ctx)} IN ({marks}))"
    if is_record(query):
        raise UsageError("record conditions are not supported; pass a dict of columns")
    return f"({_primary_column(ctx)} = {add_to_vars(ctx, query)})"


def primary_key_conditions(ctx: OperationContext) -> list[str]:
    """``<table>.<pk> = ?`` for every non-blank key of the target record.

    Left unparenthesized: the QL fix-up looks for ``" id = "``.
    """
    if not is_record(ctx.value):
        return []
    keys = primary_fields(ctx)
    if not keys or any(f.is_blank for f in keys):
        return []
    return [
        f"{query_field_name(ctx)}{quote(ctx, f.db_name)} = {add_to_vars(ctx, f.value)}"
        for f in keys
    ]


def where_sql(ctx: OperationContext) -> str:
    parts = primary_key_conditions(ctx)
    for query, args in ctx.search.where_conditions:
        parts.append(build_condition(ctx, query, args))
    if not ctx.search.unscoped and ctx.model.has_field(SOFT_DELETE_COLUMN):
        parts.append(f"{query_field_name(ctx)}{quote(ctx, SOFT_DELETE_COLUMN)} IS NULL")
    if not parts:
        return ""
    return "WHERE " + " AND ".join(parts)


def _limit_offset(ctx: OperationContext) -> str:
    limit, offset = ctx.search.limit, ctx.search.offset
    sql = ""
    if limit is not None and limit >= 0:
        sql += f" LIMIT {int(limit)}"
    if offset is not None and offset >= 0:
        if not sql and ctx.dialect.name == "sqlite":
            sql += " LIMIT -1"
        sql += f" OFFSET {int(offset)}"
    return sql


def combined_condition(ctx: OperationContext, *, pagination: bool = True) -> str:
    """WHERE clause plus, when ``pagination``, ORDER BY / LIMIT / OFFSET."""
    sql = where_sql(ctx)
    if pagination:
        if ctx.search.orders:
            sql += (" " if sql else "") + "ORDER BY " + ", ".join(ctx.search.orders)
        sql = (sql + _limit_offset(ctx)).strip()
    return sql


def add_extra_space(text: str | None) -> str:
    return f" {text}" if text else ""


def prepare_query(ctx: OperationContext) -> str:
    """Build the SELECT for ``ctx`` into ``ctx.sql`` and return it."""
    table = quoted_table_name(ctx)
    if ctx.search.selects:
        projection = ", ".join(ctx.search.selects)
    elif ctx.search.joins:
        projection = f"{table}.*"
    else:
        projection = "*"

    sql = f"SELECT {projection} FROM {table}"
    for join in ctx.search.joins:
        sql += f" {join}"
    sql += add_extra_space(combined_condition(ctx))
    ctx.sql = sql
    return sql


__all__ = [
    "SOFT_DELETE_COLUMN",
    "add_extra_space",
    "build_condition",
    "combined_condition",
    "expand_placeholders",
    "prepare_query",
    "primary_key_conditions",
    "where_sql",
]
