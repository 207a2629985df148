"""Delete pipeline steps.

Tables carrying a ``deleted_at`` column are soft-deleted: the row is
stamped instead of removed, and later queries filter it out unless the
operation is unscoped.
"""

from __future__ import annotations

from spineorm.core.dialect import is_ql, wrap_transaction
from spineorm.core.errors import MissingConditionError
from spineorm.core.logging import get_logger
from spineorm.core.transaction import exec_affected, transaction
from spineorm.engine.builder import SOFT_DELETE_COLUMN, add_extra_space, combined_condition
from spineorm.engine.context import OperationContext
from spineorm.engine.scope import add_to_vars, has_conditions, quote, quoted_table_name, table_name
from spineorm.hooks.book import Book, Group, Step

logger = get_logger(__name__)


def delete(book: Book, ctx: OperationContext) -> None:
    book.must_exec(Group.DELETE, Step.BEFORE_DELETE, ctx)
    book.must_exec(Group.DELETE, Step.DELETE_SQL, ctx)

    with transaction(ctx.conn):
        ctx.rows_affected, _ = exec_affected(ctx.conn, ctx.sql, ctx.sql_vars)
    logger.debug(
        "sql_executed",
        operation="delete",
        sql=ctx.sql,
        vars=len(ctx.sql_vars),
        rows_affected=ctx.rows_affected,
    )

    book.must_exec(Group.DELETE, Step.AFTER_DELETE, ctx)


def before_delete(book: Book, ctx: OperationContext) -> None:
    if not has_conditions(ctx):
        raise MissingConditionError("missing WHERE clause while deleting").with_context(
            operation="delete", table=ctx.model.table_name
        )
    book.exec(Group.DELETE, Step.HOOK_BEFORE_DELETE, ctx)


def delete_sql(book: Book, ctx: OperationContext) -> None:
    table = quoted_table_name(ctx)
    soft = not ctx.search.unscoped and ctx.dialect.has_column(
        ctx.conn, table_name(ctx), SOFT_DELETE_COLUMN
    )
    if soft:
        stamp = add_to_vars(ctx, ctx.now())
        sql = f"UPDATE {table} SET {quote(ctx, SOFT_DELETE_COLUMN)}={stamp}"
    else:
        sql = f"DELETE FROM {table}"

    sql += add_extra_space(combined_condition(ctx, pagination=False))
    sql += add_extra_space(ctx.options.delete_option)
    ctx.sql = wrap_transaction(sql) if is_ql(ctx.dialect) else sql


def after_delete(book: Book, ctx: OperationContext) -> None:
    book.exec(Group.DELETE, Step.HOOK_AFTER_DELETE, ctx)


__all__ = ["after_delete", "before_delete", "delete", "delete_sql"]
