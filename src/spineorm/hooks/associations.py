"""Association cascade.

``SAVE_BEFORE_ASSOCIATIONS`` saves belongs_to targets first so their keys
can be copied onto the owner before its own INSERT/UPDATE.
``SAVE_AFTER_ASSOCIATIONS`` runs once the owner has a key: has_one,
has_many and many_to_many records get the owner's key (and polymorphic
type) and are saved, and many_to_many links get a join-table row.

Each related record is saved through the full pipeline on a fresh
context with ``save_associations=False``. A record with a primary key is
updated, and created when the update touched nothing; a record without
one is created.
"""

from __future__ import annotations

from typing import Any

from spineorm.core.dialect import is_ql, wrap_transaction
from spineorm.core.logging import get_logger
from spineorm.core.transaction import exec_affected, transaction
from spineorm.engine.builder import add_extra_space
from spineorm.engine.context import OperationContext
from spineorm.engine.scope import (
    Field,
    add_to_vars,
    fields,
    is_blank,
    quote,
    save_field_as_association,
    set_column,
    should_save_association,
)
from spineorm.hooks.book import Book, Group, Step
from spineorm.model.fields import RelationKind
from spineorm.model.struct import Relationship, get_model_struct, is_record

logger = get_logger(__name__)


def _has_key(model: Any, record: Any) -> bool:
    keys = model.primary_fields
    return bool(keys) and not any(is_blank(getattr(record, k.name, None)) for k in keys)


def _has_updatable_columns(model: Any) -> bool:
    return any(f.is_normal and not f.is_primary_key for f in model.fields)


def _save(book: Book, ctx: OperationContext, record: Any) -> str:
    model = get_model_struct(record)
    if _has_key(model, record) and _has_updatable_columns(model):
        sub = ctx.clone(record, model=model)
        sub.options.save_associations = False
        book.must_exec(Group.UPDATE, Step.UPDATE, sub)
        if sub.rows_affected:
            return "update"

    sub = ctx.clone(record, model=model)
    sub.options.save_associations = False
    book.must_exec(Group.CREATE, Step.CREATE, sub)
    return "create"


def _log(ctx: OperationContext, field: Field, record: Any, action: str) -> None:
    logger.debug(
        "association_saved",
        owner=ctx.model.model_type.__name__,
        field=field.name,
        kind=field.relationship.kind.value,
        related=type(record).__name__,
        action=action,
    )


def save_before_associations(book: Book, ctx: OperationContext) -> None:
    if not should_save_association(ctx) or not is_record(ctx.value):
        return

    for field in fields(ctx):
        rel = save_field_as_association(ctx, field)
        if rel is None or rel.kind is not RelationKind.BELONGS_TO:
            continue
        related = field.value
        if not is_record(related):
            continue
        action = _save(book, ctx, related)
        for foreign, assoc in zip(rel.foreign_field_names, rel.association_foreign_field_names):
            set_column(ctx, foreign, getattr(related, assoc))
        _log(ctx, field, related, action)


def save_after_associations(book: Book, ctx: OperationContext) -> None:
    if not should_save_association(ctx) or not is_record(ctx.value):
        return

    owner = ctx.value
    for field in fields(ctx):
        rel = save_field_as_association(ctx, field)
        if rel is None or rel.kind is RelationKind.BELONGS_TO:
            continue

        related_model = get_model_struct(rel.related_type)
        value = field.value
        for record in value if isinstance(value, list) else [value]:
            if not is_record(record):
                continue
            if rel.kind is not RelationKind.MANY_TO_MANY:
                for foreign, assoc in zip(
                    rel.foreign_field_names, rel.association_foreign_field_names
                ):
                    Field(related_model.field(foreign), record).set(getattr(owner, assoc))
                if rel.polymorphic_type:
                    Field(related_model.field(rel.polymorphic_type), record).set(
                        rel.polymorphic_value
                    )

            action = _save(book, ctx, record)
            if rel.kind is RelationKind.MANY_TO_MANY:
                add_join_row(ctx, rel, owner, record)
            _log(ctx, field, record, action)


def add_join_row(ctx: OperationContext, rel: Relationship, owner: Any, record: Any) -> int:
    """Link ``owner`` and ``record`` in the join table unless already linked."""
    join = rel.join_table
    pairs = [
        (fk.db_name, getattr(owner, attr))
        for fk, attr in zip(join.source, rel.foreign_field_names)
    ] + [
        (fk.db_name, getattr(record, attr))
        for fk, attr in zip(join.destination, rel.association_foreign_field_names)
    ]

    sub = ctx.clone(owner, model=ctx.model)
    table = quote(sub, join.table_name)
    columns = ",".join(quote(sub, name) for name, _ in pairs)
    marks = ",".join(add_to_vars(sub, value) for _, value in pairs)
    exists = " AND ".join(f"{quote(sub, name)} = {add_to_vars(sub, value)}" for name, value in pairs)
    sub.sql = (
        f"INSERT INTO {table} ({columns}) SELECT {marks}"
        f"{add_extra_space(ctx.dialect.select_from_dummy_table())}"
        f" WHERE NOT EXISTS (SELECT 1 FROM {table} WHERE {exists})"
    )
    if is_ql(ctx.dialect):
        sub.sql = wrap_transaction(sub.sql)

    with transaction(sub.conn):
        sub.rows_affected, _ = exec_affected(sub.conn, sub.sql, sub.sql_vars)
    logger.debug(
        "sql_executed",
        operation="join_insert",
        sql=sub.sql,
        vars=len(sub.sql_vars),
        rows_affected=sub.rows_affected,
    )
    return sub.rows_affected


__all__ = ["add_join_row", "save_after_associations", "save_before_associations"]
