"""Update pipeline steps.

``BEFORE_UPDATE`` → ``UPDATE_SQL`` → ``UPDATE_EXEC`` → ``AFTER_UPDATE``,
all required. An update without any condition is rejected before any SQL
is built. ``Options.update_column`` marks a narrow column patch: no
timestamp, no save/update lifecycle hooks.
"""

from __future__ import annotations

from spineorm.core.dialect import is_ql, wrap_transaction
from spineorm.core.errors import MissingConditionError, UsageError
from spineorm.core.logging import get_logger
from spineorm.core.transaction import exec_affected, transaction
from spineorm.engine.builder import add_extra_space, combined_condition
from spineorm.engine.context import OperationContext
from spineorm.engine.scope import (
    add_to_vars,
    changeable_field,
    field_by_name,
    fields,
    has_conditions,
    quote,
    quoted_table_name,
    set_column,
    updated_attrs_with_values,
)
from spineorm.hooks.book import Book, Group, Step
from spineorm.model.fields import RelationKind
from spineorm.model.struct import is_record

logger = get_logger(__name__)


def update(book: Book, ctx: OperationContext) -> None:
    book.must_exec(Group.UPDATE, Step.BEFORE_UPDATE, ctx)
    book.must_exec(Group.UPDATE, Step.UPDATE_SQL, ctx)
    book.must_exec(Group.UPDATE, Step.UPDATE_EXEC, ctx)
    book.must_exec(Group.UPDATE, Step.AFTER_UPDATE, ctx)


def before_update(book: Book, ctx: OperationContext) -> None:
    if not has_conditions(ctx):
        raise MissingConditionError("missing WHERE condition for update").with_context(
            operation="update", table=ctx.model.table_name
        )
    if ctx.options.update_interface is not None:
        # stamped columns are added to the map; keep the caller's dict intact
        ctx.options.update_interface = dict(ctx.options.update_interface)

    book.must_exec(Group.UPDATE, Step.UPDATE_TIMESTAMP, ctx)
    book.must_exec(Group.UPDATE, Step.ASSIGN_UPDATING_ATTRS, ctx)
    book.must_exec(Group.UPDATE, Step.SAVE_BEFORE_ASSOCIATIONS, ctx)

    if not ctx.options.update_column:
        book.exec(Group.SAVE, Step.HOOK_BEFORE_SAVE, ctx)
        book.exec(Group.UPDATE, Step.HOOK_BEFORE_UPDATE, ctx)


def update_timestamp(book: Book, ctx: OperationContext) -> None:
    if not ctx.options.update_column and ctx.model.has_field("updated_at"):
        set_column(ctx, "updated_at", ctx.now())


def assign_updating_attrs(book: Book, ctx: OperationContext) -> None:
    attrs = ctx.options.update_interface
    if attrs is not None:
        ctx.options.update_attrs = updated_attrs_with_values(ctx, attrs)


def update_sql(book: Book, ctx: OperationContext) -> None:
    book.exec(Group.UPDATE, Step.ASSIGN_UPDATING_ATTRS, ctx)

    sets: list[str] = []
    attrs = ctx.options.update_attrs
    if attrs is not None:
        for column, value in attrs.items():
            sets.append(f"{quote(ctx, column)} = {add_to_vars(ctx, value)}")
    elif is_record(ctx.value):
        for field in fields(ctx):
            if not changeable_field(ctx, field):
                continue
            if field.is_normal and not field.is_primary_key:
                sets.append(f"{quote(ctx, field.db_name)} = {add_to_vars(ctx, field.value)}")
            elif field.relationship is not None and field.relationship.kind is RelationKind.BELONGS_TO:
                for name in field.relationship.foreign_db_names:
                    foreign = field_by_name(ctx, name)
                    if foreign is not None and not changeable_field(ctx, foreign):
                        sets.append(
                            f"{quote(ctx, foreign.db_name)} = {add_to_vars(ctx, foreign.value)}"
                        )

    if not sets:
        return

    condition = combined_condition(ctx, pagination=False)
    ctx.sql = (
        f"UPDATE {quoted_table_name(ctx)} SET {', '.join(sets)}"
        f"{add_extra_space(condition)}{add_extra_space(ctx.options.update_option)}"
    )
    if is_ql(ctx.dialect):
        ctx.sql = wrap_transaction(ctx.sql)


def update_exec(book: Book, ctx: OperationContext) -> None:
    if not ctx.sql:
        raise UsageError("missing update sql: nothing to update").with_context(
            operation="update", table=ctx.model.table_name
        )
    with transaction(ctx.conn):
        ctx.rows_affected, _ = exec_affected(ctx.conn, ctx.sql, ctx.sql_vars)
    logger.debug(
        "sql_executed",
        operation="update",
        sql=ctx.sql,
        vars=len(ctx.sql_vars),
        rows_affected=ctx.rows_affected,
    )


def after_update(book: Book, ctx: OperationContext) -> None:
    if not has_conditions(ctx):
        raise MissingConditionError("missing WHERE condition for update")

    if not ctx.options.update_column:
        book.exec(Group.UPDATE, Step.HOOK_AFTER_UPDATE, ctx)
        book.exec(Group.SAVE, Step.HOOK_AFTER_SAVE, ctx)
    book.must_exec(Group.UPDATE, Step.SAVE_AFTER_ASSOCIATIONS, ctx)


__all__ = [
    "after_update",
    "assign_updating_attrs",
    "before_update",
    "update",
    "update_exec",
    "update_sql",
    "update_timestamp",
]
