"""Query pipeline steps.

``QUERY_SQL`` → ``QUERY_EXEC`` → ``AFTER_QUERY``. Queries run outside
explicit transactions. The destination is either one record instance
(filled in place; zero rows is :class:`RecordNotFoundError`) or a list
(replaced in place; zero rows leaves it empty).
"""

from __future__ import annotations

from contextlib import closing

from spineorm.core.errors import RecordNotFoundError, UnsupportedDestinationError
from spineorm.core.logging import get_logger
from spineorm.core.transaction import execute
from spineorm.engine.builder import add_extra_space, prepare_query
from spineorm.engine.context import OperationContext
from spineorm.engine.scan import column_names, new_record, scan_row, targets_for
from spineorm.engine.scope import fields, query_field_name, quote
from spineorm.hooks.book import Book, Group, Step
from spineorm.hooks.preload import preload
from spineorm.model.struct import is_record

logger = get_logger(__name__)


def query(book: Book, ctx: OperationContext) -> None:
    book.must_exec(Group.QUERY, Step.QUERY_SQL, ctx)
    book.must_exec(Group.QUERY, Step.QUERY_EXEC, ctx)
    book.exec(Group.QUERY, Step.AFTER_QUERY, ctx)


def query_sql(book: Book, ctx: OperationContext) -> None:
    direction = ctx.options.order_by_pk
    if direction and not ctx.search.orders:
        pk = ctx.model.primary_field
        if pk is not None:
            ctx.search.order(f"{query_field_name(ctx)}{quote(ctx, pk.db_name)} {direction}")
    prepare_query(ctx)


def query_exec(book: Book, ctx: OperationContext) -> None:
    dest = ctx.value
    many = isinstance(dest, list)
    if not many and not is_record(dest):
        raise UnsupportedDestinationError(dest)

    model = ctx.model
    ctx.rows_affected = 0
    ctx.sql += add_extra_space(ctx.options.query_option)

    with closing(execute(ctx.conn, ctx.sql, ctx.sql_vars)) as cursor:
        columns = column_names(cursor.description)
        rows = cursor.fetchall()

    results = []
    for row in rows:
        record = new_record(model) if many else dest
        scan_row(columns, row, targets_for(fields(ctx, record)))
        results.append(record)
    ctx.rows_affected = len(rows)

    logger.debug(
        "sql_executed",
        operation="query",
        sql=ctx.sql,
        vars=len(ctx.sql_vars),
        rows_affected=ctx.rows_affected,
    )

    if many:
        dest[:] = results
    elif not rows:
        raise RecordNotFoundError().with_context(
            operation="query", table=model.table_name, sql=ctx.sql
        )


def after_query(book: Book, ctx: OperationContext) -> None:
    if ctx.search.preload:
        preload(book, ctx)
    book.exec(Group.QUERY, Step.HOOK_AFTER_FIND, ctx)


__all__ = ["after_query", "query", "query_exec", "query_sql"]
