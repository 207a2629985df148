"""Record metadata: dataclass declarations → cached ``ModelStruct``.

Manifesto:
    Steps never inspect a record's type at run time. The first time a
    record type is seen its dataclass fields and type hints are turned
    into a frozen ``ModelStruct`` (column names, key flags, relationship
    descriptors) which every later operation reads from a process-wide
    cache.

    - **Build once:** one build per type, guarded by an ``RLock``
    - **Read-only:** every descriptor is a frozen dataclass
    - **Convention first:** table ``users`` for ``User``, key ``id``,
      foreign key ``<owner>_id``

Architecture::

    @dataclass class User ──► get_model_struct(User)
                                  │  cache hit? ──► ModelStruct
                                  ▼
                          _build(User) under lock
                                  │
              ┌───────────────────┼───────────────────────┐
              ▼                   ▼                       ▼
        StructField(id)    StructField(name)    StructField(emails,
                                                  relationship=Relationship(
                                                    kind=has_many, ...))

Relationship keys (defaults)::

    kind           foreign_*                       association_*
    ─────────────  ──────────────────────────────  ─────────────────────────
    belongs_to     owner  <field>_<pk>             related pk
    has_one/many   related <owner>_<pk>            owner pk
    many_to_many   owner pk / join <owner>_<pk>    related pk / join <related>_<pk>

Tags:
    spine-orm, model, metadata, relationship, cache

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses
import re
import threading
import types
import typing
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from spineorm.core.errors import ModelDefinitionError
from spineorm.core.logging import get_logger
from spineorm.model.fields import FieldOptions, RelationKind, field_options

logger = get_logger(__name__)


# =============================================================================
# DESCRIPTORS
# =============================================================================


@dataclass(frozen=True)
class ForeignKey:
    """One join-table column and the column it points at."""

    db_name: str
    association_db_name: str


@dataclass(frozen=True)
class JoinTable:
    table_name: str
    source: tuple[ForeignKey, ...]
    destination: tuple[ForeignKey, ...]


@dataclass(frozen=True)
class Relationship:
    """How an owner field maps onto a related record type.

    For ``belongs_to`` the ``foreign_*`` names live on the owner; for
    ``has_one``/``has_many`` they live on the related type. For
    ``many_to_many`` the field names are the owner/related key attributes
    and the db names are the join-table columns.
    """

    kind: RelationKind
    related_type: type
    foreign_field_names: tuple[str, ...]
    foreign_db_names: tuple[str, ...]
    association_foreign_field_names: tuple[str, ...]
    association_foreign_db_names: tuple[str, ...]
    polymorphic_type: str | None = None
    polymorphic_db_name: str | None = None
    polymorphic_value: str | None = None
    join_table: JoinTable | None = None

    @property
    def is_to_many(self) -> bool:
        return self.kind in (RelationKind.HAS_MANY, RelationKind.MANY_TO_MANY)


@dataclass(frozen=True)
class StructField:
    name: str
    db_name: str
    names: tuple[str, ...]
    annotation: Any
    python_type: Any
    is_primary_key: bool = False
    is_normal: bool = False
    is_ignored: bool = False
    has_default_value: bool = False
    relationship: Relationship | None = None


@dataclass(frozen=True)
class ModelStruct:
    model_type: type
    table_name: str
    fields: tuple[StructField, ...]
    primary_fields: tuple[StructField, ...]

    @property
    def primary_field(self) -> StructField | None:
        if not self.primary_fields:
            return None
        for f in self.primary_fields:
            if f.db_name == "id":
                return f
        return self.primary_fields[0]

    def field(self, name: str) -> StructField | None:
        """Look a field up by attribute name or column name."""
        for f in self.fields:
            if name in f.names:
                return f
        return None

    def has_field(self, name: str) -> bool:
        return self.field(name) is not None


# =============================================================================
# NAMING
# =============================================================================

_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_snake(name: str) -> str:
    """``UserLanguage`` → ``user_language``, ``HTTPServer`` → ``http_server``."""
    return _CAMEL.sub("_", name).lower()


def pluralize(word: str) -> str:
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def table_name_of(cls: type) -> str:
    explicit = getattr(cls, "__tablename__", None)
    if explicit:
        return explicit
    return pluralize(to_snake(cls.__name__))


# =============================================================================
# TYPE HINTS
# =============================================================================


def _strip_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _related_type(annotation: Any, owner: type, attr: str) -> type:
    target = _strip_optional(annotation)
    if typing.get_origin(target) is list:
        args = typing.get_args(target)
        target = _strip_optional(args[0]) if args else None
    if not (isinstance(target, type) and dataclasses.is_dataclass(target)):
        raise ModelDefinitionError(
            f"{owner.__name__}.{attr}: relationship must be annotated with a "
            f"dataclass or a list of dataclasses, got {annotation!r}"
        )
    return target


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except NameError as exc:
        raise ModelDefinitionError(
            f"cannot resolve type hints of {cls.__name__}: {exc}", cause=exc
        ) from exc


def _scan_type(annotation: Any) -> Any:
    target = _strip_optional(annotation)
    if target in (bool, int, float, str, bytes, datetime, date):
        return target
    return None


# =============================================================================
# BUILD
# =============================================================================


def _columns(cls: type) -> dict[str, str]:
    """Attribute name → column name, without building relationships."""
    out: dict[str, str] = {}
    for f in dataclasses.fields(cls):
        opts = field_options(f)
        if opts.ignore or opts.relation is not None:
            continue
        out[f.name] = opts.column or f.name
    return out


def _primary_field_names(cls: type) -> tuple[str, ...]:
    names = tuple(f.name for f in dataclasses.fields(cls) if field_options(f).primary_key)
    if names:
        return names
    return ("id",) if "id" in _columns(cls) else ()


def _require(cls: type, attr: str, names: tuple[str, ...], where: type) -> tuple[str, ...]:
    columns = _columns(where)
    for name in names:
        if name not in columns:
            raise ModelDefinitionError(
                f"{cls.__name__}.{attr}: {where.__name__} has no column attribute {name!r}"
            )
    return tuple(columns[n] for n in names)


def _build_relationship(
    cls: type, attr: str, opts: FieldOptions, annotation: Any
) -> Relationship:
    related = _related_type(annotation, cls, attr)
    owner_pk = _primary_field_names(cls)
    related_pk = _primary_field_names(related)
    owner_snake = to_snake(cls.__name__)
    kind = opts.relation

    if kind is RelationKind.BELONGS_TO:
        assoc = opts.association_foreign_key or related_pk
        foreign = opts.foreign_key or tuple(f"{attr}_{pk}" for pk in assoc)
        return Relationship(
            kind=kind,
            related_type=related,
            foreign_field_names=foreign,
            foreign_db_names=_require(cls, attr, foreign, cls),
            association_foreign_field_names=assoc,
            association_foreign_db_names=_require(cls, attr, assoc, related),
        )

    if kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        assoc = opts.association_foreign_key or owner_pk
        poly_type = poly_db = poly_value = None
        if opts.polymorphic:
            foreign = opts.foreign_key or (f"{opts.polymorphic}_id",)
            poly_type = f"{opts.polymorphic}_type"
            (poly_db,) = _require(cls, attr, (poly_type,), related)
            poly_value = opts.polymorphic_value or table_name_of(cls)
        else:
            foreign = opts.foreign_key or tuple(f"{owner_snake}_{pk}" for pk in assoc)
        return Relationship(
            kind=kind,
            related_type=related,
            foreign_field_names=foreign,
            foreign_db_names=_require(cls, attr, foreign, related),
            association_foreign_field_names=assoc,
            association_foreign_db_names=_require(cls, attr, assoc, cls),
            polymorphic_type=poly_type,
            polymorphic_db_name=poly_db,
            polymorphic_value=poly_value,
        )

    if kind is RelationKind.MANY_TO_MANY:
        owner_keys = opts.foreign_key or owner_pk
        related_keys = opts.association_foreign_key or related_pk
        owner_cols = _require(cls, attr, owner_keys, cls)
        related_cols = _require(cls, attr, related_keys, related)
        related_snake = to_snake(related.__name__)
        join_source = opts.join_foreign_key or tuple(f"{owner_snake}_{c}" for c in owner_cols)
        join_dest = opts.association_join_foreign_key or tuple(
            f"{related_snake}_{c}" for c in related_cols
        )
        if len(join_source) != len(owner_cols) or len(join_dest) != len(related_cols):
            raise ModelDefinitionError(
                f"{cls.__name__}.{attr}: join table keys do not match the key columns"
            )
        join = JoinTable(
            table_name=opts.join_table,
            source=tuple(ForeignKey(j, c) for j, c in zip(join_source, owner_cols)),
            destination=tuple(ForeignKey(j, c) for j, c in zip(join_dest, related_cols)),
        )
        return Relationship(
            kind=kind,
            related_type=related,
            foreign_field_names=owner_keys,
            foreign_db_names=join_source,
            association_foreign_field_names=related_keys,
            association_foreign_db_names=join_dest,
            join_table=join,
        )

    raise ModelDefinitionError(f"{cls.__name__}.{attr}: unknown relation {kind!r}")


def _build(cls: type) -> ModelStruct:
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise ModelDefinitionError(f"{cls!r} is not a dataclass record type")

    hints = _type_hints(cls)
    primary = set(_primary_field_names(cls))
    fields: list[StructField] = []

    for f in dataclasses.fields(cls):
        opts = field_options(f)
        annotation = hints.get(f.name, Any)
        db_name = opts.column or f.name
        relationship = None
        if opts.relation is not None and not opts.ignore:
            relationship = _build_relationship(cls, f.name, opts, annotation)
        is_normal = not opts.ignore and relationship is None
        fields.append(
            StructField(
                name=f.name,
                db_name=db_name,
                names=(f.name,) if db_name == f.name else (f.name, db_name),
                annotation=annotation,
                python_type=_scan_type(annotation),
                is_primary_key=is_normal and f.name in primary,
                is_normal=is_normal,
                is_ignored=opts.ignore,
                has_default_value=opts.has_default,
                relationship=relationship,
            )
        )

    return ModelStruct(
        model_type=cls,
        table_name=table_name_of(cls),
        fields=tuple(fields),
        primary_fields=tuple(f for f in fields if f.is_primary_key),
    )


# =============================================================================
# CACHE
# =============================================================================

_cache: dict[type, ModelStruct] = {}
_cache_lock = threading.RLock()


def get_model_struct(value: Any) -> ModelStruct:
    """Return the cached ``ModelStruct`` for a record type or instance."""
    cls = value if isinstance(value, type) else type(value)
    cached = _cache.get(cls)
    if cached is not None:
        return cached

    with _cache_lock:
        cached = _cache.get(cls)
        if cached is None:
            cached = _build(cls)
            _cache[cls] = cached
            logger.debug("model_struct_built", model=cls.__name__, table=cached.table_name)
        return cached


def clear_model_cache() -> None:
    """Clear the metadata cache (for testing)."""
    with _cache_lock:
        _cache.clear()


def is_record(value: Any) -> bool:
    """A dataclass instance (not the class itself)."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


__all__ = [
    "ForeignKey",
    "JoinTable",
    "Relationship",
    "StructField",
    "ModelStruct",
    "get_model_struct",
    "clear_model_cache",
    "is_record",
    "table_name_of",
    "to_snake",
    "pluralize",
]
