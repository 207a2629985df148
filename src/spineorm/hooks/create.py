"""Create pipeline steps.

Architecture:

    .. code-block:: text

        CREATE (driver)
        ├── BEFORE_CREATE      (required)  SAVE.HOOK_BEFORE_SAVE, HOOK_BEFORE_CREATE
        ├── CREATE_SQL         (optional)  SAVE_BEFORE_ASSOCIATIONS → UPDATE_TIMESTAMP
        │                                  → INSERT text
        ├── CREATE_EXEC        (required)  RETURNING scan, or rowcount + lastrowid
        └── AFTER_CREATE       (required)  QL fix-up → RELOAD_DEFAULTS
                                           → HOOK_AFTER_CREATE, SAVE.HOOK_AFTER_SAVE
                                           → UPDATE.SAVE_AFTER_ASSOCIATIONS

INSERT column policy:
    - changeable normal fields are bound, except a blank primary key
    - blank fields declared ``has_default`` are left to the database and
      listed in ``Options.blank_columns_with_default``
    - a belongs_to field contributes its foreign-key columns when those
      are not changeable on their own
    - no columns at all gives ``INSERT INTO t DEFAULT VALUES``

Tags:
    spine-orm, hooks, create, insert
"""

from __future__ import annotations

from contextlib import closing

from spineorm.core.dialect import is_ql, wrap_transaction
from spineorm.core.errors import UnaddressableError
from spineorm.core.logging import get_logger
from spineorm.core.transaction import exec_affected, execute, transaction
from spineorm.engine.builder import add_extra_space
from spineorm.engine.context import OperationContext
from spineorm.engine.scan import coerce, column_names, scan_row, targets_for
from spineorm.engine.scope import (
    Field,
    add_to_vars,
    changeable_field,
    field_by_name,
    fields,
    primary_field,
    primary_fields,
    quote,
    quoted_table_name,
    should_save_association,
)
from spineorm.hooks.book import Book, Group, Step
from spineorm.hooks.ql import ql_after_create
from spineorm.model.fields import RelationKind
from spineorm.model.struct import is_record

logger = get_logger(__name__)

TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def create(book: Book, ctx: OperationContext) -> None:
    book.must_exec(Group.CREATE, Step.BEFORE_CREATE, ctx)
    book.exec(Group.CREATE, Step.CREATE_SQL, ctx)
    book.must_exec(Group.CREATE, Step.CREATE_EXEC, ctx)
    book.must_exec(Group.CREATE, Step.AFTER_CREATE, ctx)


def before_create(book: Book, ctx: OperationContext) -> None:
    book.exec(Group.SAVE, Step.HOOK_BEFORE_SAVE, ctx)
    book.exec(Group.CREATE, Step.HOOK_BEFORE_CREATE, ctx)


def create_sql(book: Book, ctx: OperationContext) -> None:
    if should_save_association(ctx):
        book.must_exec(Group.CREATE, Step.SAVE_BEFORE_ASSOCIATIONS, ctx)
    book.exec(Group.CREATE, Step.UPDATE_TIMESTAMP, ctx)
    build_insert(ctx)
    if is_ql(ctx.dialect):
        ctx.sql = wrap_transaction(ctx.sql)


def update_timestamp(book: Book, ctx: OperationContext) -> None:
    """Stamp blank ``created_at``/``updated_at`` with the context clock."""
    now = ctx.now()
    for name in TIMESTAMP_COLUMNS:
        field = field_by_name(ctx, name)
        if field is not None and field.is_normal and field.is_blank:
            field.set(now)


def _returning_suffix(ctx: OperationContext, pk: Field | None) -> str:
    column = quote(ctx, pk.db_name) if pk is not None else "*"
    return ctx.dialect.last_insert_id_returning_suffix(quoted_table_name(ctx), column)


def build_insert(ctx: OperationContext) -> str:
    columns: list[str] = []
    marks: list[str] = []
    blank_with_default: list[str] = []

    for field in fields(ctx):
        if not changeable_field(ctx, field):
            continue
        if field.is_normal:
            if field.is_blank and field.has_default_value:
                blank_with_default.append(field.db_name)
            elif not field.is_primary_key or not field.is_blank:
                columns.append(quote(ctx, field.db_name))
                marks.append(add_to_vars(ctx, field.value))
        elif field.relationship is not None and field.relationship.kind is RelationKind.BELONGS_TO:
            for name in field.relationship.foreign_db_names:
                foreign = field_by_name(ctx, name)
                if foreign is not None and not changeable_field(ctx, foreign):
                    columns.append(quote(ctx, foreign.db_name))
                    marks.append(add_to_vars(ctx, foreign.value))

    ctx.options.blank_columns_with_default = blank_with_default

    table = quoted_table_name(ctx)
    tail = add_extra_space(ctx.options.insert_option) + add_extra_space(
        _returning_suffix(ctx, primary_field(ctx))
    )
    if columns:
        ctx.sql = f"INSERT INTO {table} ({','.join(columns)}) VALUES ({','.join(marks)}){tail}"
    else:
        ctx.sql = f"INSERT INTO {table} DEFAULT VALUES{tail}"
    return ctx.sql


def _ensure_addressable(ctx: OperationContext, pk: Field) -> None:
    params = getattr(type(ctx.value), "__dataclass_params__", None)
    if not is_record(ctx.value) or (params is not None and params.frozen):
        raise UnaddressableError(
            f"using unaddressable value: cannot write {pk.name} back into "
            f"{type(ctx.value).__name__}"
        ).with_context(operation="create", table=ctx.model.table_name)


def create_exec(book: Book, ctx: OperationContext) -> None:
    """Run the INSERT and write the generated key back into the record."""
    pk = primary_field(ctx)
    suffix = _returning_suffix(ctx, pk)

    if not suffix or pk is None:
        was_blank = pk is not None and pk.is_blank
        if was_blank:
            _ensure_addressable(ctx, pk)
        with transaction(ctx.conn):
            rows, last_id = exec_affected(ctx.conn, ctx.sql, ctx.sql_vars)
        ctx.rows_affected = rows
        if was_blank and last_id is not None:
            pk.set(coerce(last_id, pk.python_type))
    else:
        _ensure_addressable(ctx, pk)
        with transaction(ctx.conn):
            with closing(execute(ctx.conn, ctx.sql, ctx.sql_vars)) as cursor:
                row = cursor.fetchone()
        if row is not None:
            pk.set(coerce(row[0], pk.python_type))
        ctx.rows_affected = 1

    logger.debug(
        "sql_executed",
        operation="create",
        sql=ctx.sql,
        vars=len(ctx.sql_vars),
        rows_affected=ctx.rows_affected,
    )


def after_create(book: Book, ctx: OperationContext) -> None:
    if is_ql(ctx.dialect):
        ql_after_create(book, ctx)
    book.exec(Group.CREATE, Step.RELOAD_DEFAULTS, ctx)
    book.exec(Group.CREATE, Step.HOOK_AFTER_CREATE, ctx)
    book.exec(Group.SAVE, Step.HOOK_AFTER_SAVE, ctx)
    book.must_exec(Group.UPDATE, Step.SAVE_AFTER_ASSOCIATIONS, ctx)


def reload_defaults(book: Book, ctx: OperationContext) -> None:
    """Read back columns the database filled from their defaults."""
    columns = ctx.options.blank_columns_with_default
    if not columns or not is_record(ctx.value):
        return
    keys = primary_fields(ctx)
    if not keys or any(f.is_blank for f in keys):
        return

    sub = ctx.clone(ctx.value, model=ctx.model)
    conditions = " AND ".join(
        f"{quote(sub, k.db_name)} = {add_to_vars(sub, k.value)}" for k in keys
    )
    sub.sql = (
        f"SELECT {', '.join(quote(sub, c) for c in columns)} "
        f"FROM {quoted_table_name(ctx)} WHERE {conditions}"
    )
    with closing(execute(sub.conn, sub.sql, sub.sql_vars)) as cursor:
        row = cursor.fetchone()
        names = column_names(cursor.description)
    if row is not None:
        scan_row(names, row, targets_for(fields(ctx)))


__all__ = [
    "after_create",
    "before_create",
    "build_insert",
    "create",
    "create_exec",
    "create_sql",
    "reload_defaults",
    "update_timestamp",
]
