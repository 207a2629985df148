"""Association preloader.

Manifesto:
    Loading related records one owner at a time is the N+1 problem. The
    preloader issues exactly one secondary query per path segment, covering
    every owner at that level with an ``IN (...)`` predicate, then splices
    the results back into the owners by key.

    - **One query per segment:** owners are batched, never looped over
    - **String key equality:** ``1`` and ``"1"`` name the same key
    - **Explicit empties:** to-many owners without matches get ``[]``
    - **Fail loudly:** unknown paths and relation kinds are errors

Architecture:

    .. code-block:: text

        preload(ctx)                     "author.profile"
        ├── segment "author"  ─► preload_belongs_to(owners=[posts])
        │                         SELECT * FROM authors WHERE id IN (?,?)
        ├── column_as_context ─► owners=[authors] (flattened, de-duplicated)
        └── segment "profile" ─► preload_has_one(owners=[authors])
                                  SELECT * FROM profiles WHERE author_id IN (?,?)

    many_to_many goes through the join table with a fixed projection:

    .. code-block:: text

        SELECT "languages"."id" AS "id", ...,
               "user_languages"."user_id" AS "user_languages__user_id"
        FROM "languages"
        INNER JOIN "user_languages" ON "user_languages"."language_id" = "languages"."id"
        WHERE ("user_languages"."user_id" IN (?,?))

    The aliased join-table key groups each related row under its owner.

Key sources per kind:

    ============  ======================  ==========================
    kind          owner key               related column filtered
    ============  ======================  ==========================
    belongs_to    foreign fields          association db names
    has_one/many  association fields      foreign db names (+ type)
    many_to_many  foreign fields          join-table source columns
    ============  ======================  ==========================

Tags:
    spine-orm, preload, eager-loading, relationship, many-to-many

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import closing
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from spineorm.core.errors import PreloadPathError, UnsupportedRelationError
from spineorm.core.logging import get_logger
from spineorm.core.transaction import execute
from spineorm.engine.builder import prepare_query
from spineorm.engine.context import OperationContext
from spineorm.engine.scan import column_names, new_record, scan_row, targets_for
from spineorm.engine.scope import (
    Field,
    column_as_array,
    fields,
    key_string,
    quote,
    to_query_condition,
    values_of,
)
from spineorm.hooks.book import Book, Group, Step
from spineorm.model.fields import RelationKind
from spineorm.model.struct import Relationship, StructField, get_model_struct, is_record

if TYPE_CHECKING:
    from spineorm.core.dialect import Dialect

logger = get_logger(__name__)


# =============================================================================
# PATH WALK
# =============================================================================


def _relationship_field(ctx: OperationContext, name: str) -> StructField | None:
    for struct in ctx.model.fields:
        if struct.name == name and struct.relationship is not None:
            return struct
    return None


def preload(book: Book, ctx: OperationContext) -> None:
    """Resolve every preload path attached to ``ctx.search``."""
    preloaded: set[str] = set()

    for spec in ctx.search.preload:
        segments = spec.schema.split(".")
        current = ctx
        for idx, name in enumerate(segments):
            struct = _relationship_field(current, name)
            if struct is None:
                raise PreloadPathError(spec.schema, name, current.model.model_type.__name__)

            prefix = ".".join(segments[: idx + 1])
            if prefix not in preloaded:
                last = idx == len(segments) - 1
                preload_field(book, current, struct, spec.conditions if last else ())
                preloaded.add(prefix)

            if idx < len(segments) - 1:
                current = column_as_context(current, struct)


def column_as_context(ctx: OperationContext, struct: StructField) -> OperationContext:
    """A list context over the related records held in ``struct``."""
    seen: set[int] = set()
    values: list[Any] = []
    for owner in ctx.records():
        value = getattr(owner, struct.name, None)
        for item in value if isinstance(value, list) else [value]:
            if is_record(item) and id(item) not in seen:
                seen.add(id(item))
                values.append(item)
    return ctx.clone(values, model=get_model_struct(struct.relationship.related_type))


def preload_field(
    book: Book, ctx: OperationContext, struct: StructField, conditions: Sequence[Any]
) -> None:
    loader = _LOADERS.get(struct.relationship.kind)
    if loader is None:
        raise UnsupportedRelationError(struct.relationship.kind)
    loader(book, ctx, struct, conditions)


# =============================================================================
# SHARED
# =============================================================================


def in_condition(
    ctx: OperationContext, columns: Sequence[str], keys: Sequence[tuple[Any, ...]]
) -> tuple[str, list[Any]]:
    """``col IN (?,?)`` or ``(c1,c2) IN ((?,?),(?,?))`` plus flat values."""
    target = to_query_condition(ctx, columns)
    if len(columns) == 1:
        marks = ",".join("?" for _ in keys)
        values = [key[0] for key in keys]
    else:
        group = "(" + ",".join("?" for _ in columns) + ")"
        marks = ",".join(group for _ in keys)
        values = [v for key in keys for v in key]
    return f"{target} IN ({marks})", values


def _apply_conditions(sub: OperationContext, conditions: Sequence[Any]) -> None:
    if conditions:
        sub.search.where(conditions[0], *conditions[1:])


def _query_related(
    book: Book,
    ctx: OperationContext,
    rel: Relationship,
    columns: Sequence[str],
    keys: Sequence[tuple[Any, ...]],
    conditions: Sequence[Any],
) -> list[Any]:
    sub = ctx.clone([], model=get_model_struct(rel.related_type))
    query, values = in_condition(sub, columns, keys)
    if rel.polymorphic_db_name:
        query += f" AND {quote(sub, rel.polymorphic_db_name)} = ?"
        values.append(rel.polymorphic_value)
    sub.search.where(query, *values)
    _apply_conditions(sub, conditions)
    book.must_exec(Group.QUERY, Step.QUERY, sub)
    return sub.value


def _log(kind: str, struct: StructField, owners: int, keys: int, results: int) -> None:
    logger.debug(
        "preload_segment",
        kind=kind,
        field=struct.name,
        owners=owners,
        keys=keys,
        results=results,
    )


# =============================================================================
# LOADERS
# =============================================================================


def preload_belongs_to(
    book: Book, ctx: OperationContext, struct: StructField, conditions: Sequence[Any]
) -> None:
    rel = struct.relationship
    owners = ctx.records()
    keys = column_as_array(rel.foreign_field_names, owners)
    if not keys:
        return

    results = _query_related(
        book, ctx, rel, rel.association_foreign_db_names, keys, conditions
    )
    by_key: dict[str, Any] = {}
    for result in results:
        by_key.setdefault(key_string(values_of(result, rel.association_foreign_field_names)), result)

    for owner in owners:
        match = by_key.get(key_string(values_of(owner, rel.foreign_field_names)))
        if match is not None:
            Field(struct, owner).set(match)
    _log("belongs_to", struct, len(owners), len(keys), len(results))


def preload_has_one(
    book: Book, ctx: OperationContext, struct: StructField, conditions: Sequence[Any]
) -> None:
    rel = struct.relationship
    owners = ctx.records()
    keys = column_as_array(rel.association_foreign_field_names, owners)
    if not keys:
        return

    results = _query_related(book, ctx, rel, rel.foreign_db_names, keys, conditions)
    by_key: dict[str, Any] = {}
    for result in results:
        by_key.setdefault(key_string(values_of(result, rel.foreign_field_names)), result)

    for owner in owners:
        match = by_key.get(key_string(values_of(owner, rel.association_foreign_field_names)))
        if match is not None:
            Field(struct, owner).set(match)
    _log("has_one", struct, len(owners), len(keys), len(results))


def preload_has_many(
    book: Book, ctx: OperationContext, struct: StructField, conditions: Sequence[Any]
) -> None:
    rel = struct.relationship
    owners = ctx.records()
    keys = column_as_array(rel.association_foreign_field_names, owners)
    if not keys:
        return

    results = _query_related(book, ctx, rel, rel.foreign_db_names, keys, conditions)
    groups: dict[str, list[Any]] = {}
    for result in results:
        groups.setdefault(key_string(values_of(result, rel.foreign_field_names)), []).append(result)

    for owner in owners:
        key = key_string(values_of(owner, rel.association_foreign_field_names))
        Field(struct, owner).set(list(groups.get(key, [])))
    _log("has_many", struct, len(owners), len(keys), len(results))


@dataclass(frozen=True)
class JoinProjection:
    """Fixed SELECT list and join for one many-to-many relationship."""

    columns: tuple[str, ...]
    join_clause: str
    key_aliases: tuple[str, ...]


@lru_cache(maxsize=256)
def join_projection(rel: Relationship, dialect: Dialect) -> JoinProjection:
    q = dialect.quote
    related = get_model_struct(rel.related_type)
    related_table = q(related.table_name)
    join = rel.join_table
    join_table = q(join.table_name)

    columns = [
        f"{related_table}.{q(f.db_name)} AS {q(f.db_name)}" for f in related.fields if f.is_normal
    ]
    aliases: list[str] = []
    for fk in join.source:
        alias = f"{join.table_name}__{fk.db_name}"
        columns.append(f"{join_table}.{q(fk.db_name)} AS {q(alias)}")
        aliases.append(alias)

    on = " AND ".join(
        f"{join_table}.{q(fk.db_name)} = {related_table}.{q(fk.association_db_name)}"
        for fk in join.destination
    )
    return JoinProjection(tuple(columns), f"INNER JOIN {join_table} ON {on}", tuple(aliases))


def preload_many_to_many(
    book: Book, ctx: OperationContext, struct: StructField, conditions: Sequence[Any]
) -> None:
    rel = struct.relationship
    owners = ctx.records()
    keys = column_as_array(rel.foreign_field_names, owners)
    if not keys:
        return

    related = get_model_struct(rel.related_type)
    projection = join_projection(rel, ctx.dialect)

    sub = ctx.clone([], model=related)
    sub.search.selects = list(projection.columns)
    sub.search.join(projection.join_clause)
    source_columns = [f"{rel.join_table.table_name}.{fk.db_name}" for fk in rel.join_table.source]
    query, values = in_condition(sub, source_columns, keys)
    sub.search.where(query, *values)
    _apply_conditions(sub, conditions)
    prepare_query(sub)

    with closing(execute(sub.conn, sub.sql, sub.sql_vars)) as cursor:
        columns = column_names(cursor.description)
        rows = cursor.fetchall()

    positions = [columns.index(alias) for alias in projection.key_aliases]
    groups: dict[str, list[Any]] = {}
    for row in rows:
        record = new_record(related)
        scan_row(columns, row, targets_for(fields(sub, record)))
        link = key_string(row[i] for i in positions)
        groups.setdefault(link, []).append(record)

    for owner in owners:
        key = key_string(values_of(owner, rel.foreign_field_names))
        Field(struct, owner).set(list(groups.get(key, [])))
    _log("many_to_many", struct, len(owners), len(keys), len(rows))


_LOADERS = {
    RelationKind.BELONGS_TO: preload_belongs_to,
    RelationKind.HAS_ONE: preload_has_one,
    RelationKind.HAS_MANY: preload_has_many,
    RelationKind.MANY_TO_MANY: preload_many_to_many,
}


__all__ = [
    "JoinProjection",
    "column_as_context",
    "in_condition",
    "join_projection",
    "preload",
    "preload_belongs_to",
    "preload_field",
    "preload_has_many",
    "preload_has_one",
    "preload_many_to_many",
]
