"""Field handles and helpers the steps use to read and write records.

A :class:`Field` pairs a :class:`~spineorm.model.struct.StructField` with
the record it belongs to, so steps can ask for a value, test it for
blankness and write it back without touching ``getattr``/``setattr``
themselves. Everything else here is a small function over an
``OperationContext``: quoting, parameter binding, the changeable-field
rule, update-attribute translation and key collection for preloading.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from spineorm.core.errors import UnaddressableError
from spineorm.engine.context import OperationContext
from spineorm.model.struct import Relationship, StructField, is_record


def is_blank(value: Any) -> bool:
    """None, zero, empty string, False or an empty container."""
    if value is None:
        return True
    if isinstance(value, bool | int | float | str | bytes):
        return not value
    if isinstance(value, list | tuple | dict | set):
        return len(value) == 0
    return False


class Field:
    """Runtime handle: one declared field on one record."""

    __slots__ = ("struct", "owner")

    def __init__(self, struct: StructField, owner: Any) -> None:
        self.struct = struct
        self.owner = owner

    def __getattr__(self, name: str) -> Any:
        return getattr(self.struct, name)

    @property
    def value(self) -> Any:
        if not is_record(self.owner):
            return None
        return getattr(self.owner, self.struct.name)

    @property
    def is_blank(self) -> bool:
        return is_blank(self.value)

    def set(self, value: Any) -> None:
        if not is_record(self.owner):
            return
        try:
            setattr(self.owner, self.struct.name, value)
        except AttributeError as exc:
            raise UnaddressableError(
                f"using unaddressable value: cannot set {type(self.owner).__name__}.{self.struct.name}",
                cause=exc,
            ) from exc

    def __repr__(self) -> str:
        return f"Field({self.struct.name}={self.value!r})"


# =============================================================================
# FIELD LOOKUP
# =============================================================================


def fields(ctx: OperationContext, value: Any = None) -> list[Field]:
    owner = ctx.value if value is None else value
    return [Field(s, owner) for s in ctx.model.fields]


def primary_field(ctx: OperationContext, value: Any = None) -> Field | None:
    struct = ctx.model.primary_field
    if struct is None:
        return None
    return Field(struct, ctx.value if value is None else value)


def primary_fields(ctx: OperationContext, value: Any = None) -> list[Field]:
    owner = ctx.value if value is None else value
    return [Field(s, owner) for s in ctx.model.primary_fields]


def field_by_name(ctx: OperationContext, name: str, value: Any = None) -> Field | None:
    struct = ctx.model.field(name)
    if struct is None:
        return None
    return Field(struct, ctx.value if value is None else value)


def changeable_field(ctx: OperationContext, field: Field | StructField) -> bool:
    """Selects, when present, must name the field; omits must not."""
    names = field.names
    selects = ctx.search.selects
    if selects and not any(n in selects for n in names):
        return False
    return not any(n in ctx.search.omits for n in names)


def set_column(ctx: OperationContext, name: str, value: Any) -> bool:
    """Write ``value`` into the field named ``name`` (attribute or column).

    Pending update attributes pick the value up too, so a stamped column
    reaches the SET clause of an attribute-map update. Returns whether a
    field matched.
    """
    field = field_by_name(ctx, name)
    if field is None:
        return False
    field.set(value)
    if ctx.options.update_interface is not None:
        ctx.options.update_interface[field.db_name] = value
    if ctx.options.update_attrs is not None:
        ctx.options.update_attrs[field.db_name] = value
    return True


def save_field_as_association(ctx: OperationContext, field: Field) -> Relationship | None:
    if field.is_ignored or field.relationship is None:
        return None
    if not changeable_field(ctx, field) or field.is_blank:
        return None
    return field.relationship


def should_save_association(ctx: OperationContext) -> bool:
    return ctx.options.save_associations


def updated_attrs_with_values(ctx: OperationContext, attrs: dict[str, Any]) -> dict[str, Any]:
    """Translate caller attributes into a column → value map.

    Known, changeable keys are written into the record; relationship keys
    are written but never become columns. Primary keys are skipped unless
    protected attributes are ignored. Unknown keys pass through untouched.
    """
    results: dict[str, Any] = {}
    for key, value in attrs.items():
        field = field_by_name(ctx, key)
        if field is None:
            results[key] = value
            continue
        if not changeable_field(ctx, field) or field.is_ignored:
            continue
        if field.is_primary_key and not ctx.options.ignore_protected_attrs:
            continue
        field.set(value)
        if field.is_normal:
            results[field.db_name] = value
    return results


# =============================================================================
# SQL FRAGMENTS
# =============================================================================


def quote(ctx: OperationContext, name: str) -> str:
    if "." in name:
        return ".".join(ctx.dialect.quote(part) for part in name.split("."))
    return ctx.dialect.quote(name)


def table_name(ctx: OperationContext) -> str:
    return ctx.search.table_name or ctx.model.table_name


def quoted_table_name(ctx: OperationContext) -> str:
    return quote(ctx, table_name(ctx))


def query_field_name(ctx: OperationContext) -> str:
    return ctx.dialect.query_field_name(quoted_table_name(ctx))


def add_to_vars(ctx: OperationContext, value: Any) -> str:
    """Bind ``value`` and return its placeholder token."""
    ctx.sql_vars.append(value)
    return ctx.dialect.placeholder(len(ctx.sql_vars) - 1)


def to_query_condition(ctx: OperationContext, columns: Sequence[str]) -> str:
    """``a`` for one column, ``(a,b)`` for a composite key."""
    quoted = [quote(ctx, c) for c in columns]
    if len(quoted) == 1:
        return quoted[0]
    return f"({','.join(quoted)})"


def has_conditions(ctx: OperationContext) -> bool:
    if ctx.search.where_conditions:
        return True
    if is_record(ctx.value):
        keys = primary_fields(ctx)
        return bool(keys) and not any(f.is_blank for f in keys)
    return False


# =============================================================================
# KEYS
# =============================================================================


def values_of(record: Any, names: Sequence[str]) -> tuple[Any, ...]:
    return tuple(getattr(record, n, None) for n in names)


def key_string(values: Iterable[Any]) -> str:
    """String form of a key tuple; ``1`` and ``"1"`` compare equal.

    Parts are joined with the ASCII unit separator, which keys do not contain.
    """
    return "\x1f".join(str(v) for v in values)


def column_as_array(names: Sequence[str], records: Iterable[Any]) -> list[tuple[Any, ...]]:
    """Distinct key tuples from ``records``, skipping all-blank ones."""
    seen: set[str] = set()
    keys: list[tuple[Any, ...]] = []
    for record in records:
        values = values_of(record, names)
        if all(is_blank(v) for v in values):
            continue
        marker = key_string(values)
        if marker in seen:
            continue
        seen.add(marker)
        keys.append(values)
    return keys


__all__ = [
    "Field",
    "add_to_vars",
    "changeable_field",
    "column_as_array",
    "field_by_name",
    "fields",
    "has_conditions",
    "is_blank",
    "key_string",
    "primary_field",
    "primary_fields",
    "query_field_name",
    "quote",
    "quoted_table_name",
    "save_field_as_association",
    "set_column",
    "should_save_association",
    "table_name",
    "to_query_condition",
    "updated_attrs_with_values",
    "values_of",
]
