"""Field declarations for record dataclasses.

Records are plain ``@dataclass`` classes. Column options and relationships
are declared with the helpers below, which return ``dataclasses.field()``
objects carrying a :class:`FieldOptions` under the ``"spineorm"`` metadata
key. Undecorated fields are normal columns named after the attribute.

Example::

    @dataclass
    class User:
        id: int = column(primary_key=True, default=0)
        name: str = ""
        company_id: int | None = None
        company: Company | None = belongs_to()
        emails: list[Email] = has_many()
        languages: list[Language] = many_to_many("user_languages")
        scratch: str = ignore()
"""

from __future__ import annotations

import dataclasses
from dataclasses import MISSING
from enum import Enum
from typing import Any

METADATA_KEY = "spineorm"


class RelationKind(str, Enum):
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"


@dataclasses.dataclass(frozen=True)
class FieldOptions:
    """Declared options for one dataclass field."""

    column: str | None = None
    primary_key: bool = False
    has_default: bool = False
    ignore: bool = False
    relation: RelationKind | None = None
    foreign_key: tuple[str, ...] = ()
    association_foreign_key: tuple[str, ...] = ()
    polymorphic: str | None = None
    polymorphic_value: str | None = None
    join_table: str | None = None
    join_foreign_key: tuple[str, ...] = ()
    association_join_foreign_key: tuple[str, ...] = ()


def _names(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _field(options: FieldOptions, default: Any, default_factory: Any) -> Any:
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={METADATA_KEY: options},
    )


def field_options(field: dataclasses.Field) -> FieldOptions:
    """Options declared on ``field``, or the defaults for an undecorated one."""
    return field.metadata.get(METADATA_KEY) or FieldOptions()


def column(
    *,
    name: str | None = None,
    primary_key: bool = False,
    has_default: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """A normal column.

    ``has_default`` marks a column the database fills when the value is
    blank on insert; the engine leaves it out of the INSERT and reads it
    back afterwards.
    """
    options = FieldOptions(column=name, primary_key=primary_key, has_default=has_default)
    return _field(options, default, default_factory)


def ignore(*, default: Any = None, default_factory: Any = MISSING) -> Any:
    """An attribute the engine never reads or writes."""
    if default_factory is not MISSING:
        default = MISSING
    return _field(FieldOptions(ignore=True), default, default_factory)


def belongs_to(
    *,
    foreign_key: str | tuple[str, ...] | None = None,
    association_foreign_key: str | tuple[str, ...] | None = None,
) -> Any:
    """The owner holds the foreign key (``<field>_id`` by default)."""
    options = FieldOptions(
        relation=RelationKind.BELONGS_TO,
        foreign_key=_names(foreign_key),
        association_foreign_key=_names(association_foreign_key),
    )
    return _field(options, None, MISSING)


def has_one(
    *,
    foreign_key: str | tuple[str, ...] | None = None,
    association_foreign_key: str | tuple[str, ...] | None = None,
    polymorphic: str | None = None,
    polymorphic_value: str | None = None,
) -> Any:
    """The related record holds the foreign key (``<owner>_id`` by default)."""
    options = FieldOptions(
        relation=RelationKind.HAS_ONE,
        foreign_key=_names(foreign_key),
        association_foreign_key=_names(association_foreign_key),
        polymorphic=polymorphic,
        polymorphic_value=polymorphic_value,
    )
    return _field(options, None, MISSING)


def has_many(
    *,
    foreign_key: str | tuple[str, ...] | None = None,
    association_foreign_key: str | tuple[str, ...] | None = None,
    polymorphic: str | None = None,
    polymorphic_value: str | None = None,
) -> Any:
    """Like :func:`has_one`, holding a list of related records."""
    options = FieldOptions(
        relation=RelationKind.HAS_MANY,
        foreign_key=_names(foreign_key),
        association_foreign_key=_names(association_foreign_key),
        polymorphic=polymorphic,
        polymorphic_value=polymorphic_value,
    )
    return _field(options, MISSING, list)


def many_to_many(
    join_table: str,
    *,
    foreign_key: str | tuple[str, ...] | None = None,
    association_foreign_key: str | tuple[str, ...] | None = None,
    join_foreign_key: str | tuple[str, ...] | None = None,
    association_join_foreign_key: str | tuple[str, ...] | None = None,
) -> Any:
    """An association through ``join_table``.

    ``foreign_key``/``association_foreign_key`` name the owner and related
    key attributes (primary keys by default). ``join_foreign_key`` and
    ``association_join_foreign_key`` name the join-table columns pointing
    at each side (``<owner>_id`` and ``<related>_id`` by default).
    """
    options = FieldOptions(
        relation=RelationKind.MANY_TO_MANY,
        foreign_key=_names(foreign_key),
        association_foreign_key=_names(association_foreign_key),
        join_table=join_table,
        join_foreign_key=_names(join_foreign_key),
        association_join_foreign_key=_names(association_join_foreign_key),
    )
    return _field(options, MISSING, list)


__all__ = [
    "METADATA_KEY",
    "RelationKind",
    "FieldOptions",
    "field_options",
    "column",
    "ignore",
    "belongs_to",
    "has_one",
    "has_many",
    "many_to_many",
]
