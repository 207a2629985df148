"""Per-operation state threaded through the hook pipeline.

Architecture:

    .. code-block:: text

        OperationContext
        ├── .value         → record instance, list of records, or record class
        ├── .model         → ModelStruct (derived from value unless given)
        ├── .sql / .sql_vars / .rows_affected
        ├── .search        → Search (where, order, limit, preload, ...)
        ├── .options       → Options (typed per-operation settings)
        ├── .conn / .dialect / .book / .now   (shared with clones)
        └── .clone(value)  → fresh context for a sub-operation

    A clone shares the connection, dialect, book and clock with its parent
    and inherits ``save_associations``. SQL text, parameters, search
    conditions and every other option start empty, so a cascaded or preload
    sub-operation never leaks state into its parent.

Tags:
    spine-orm, engine, context, search, options

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from spineorm.core.errors import UnsupportedDestinationError
from spineorm.model.struct import ModelStruct, get_model_struct, is_record

if TYPE_CHECKING:
    from spineorm.core.dialect import Dialect
    from spineorm.core.protocols import Connection
    from spineorm.hooks.book import Book


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class PreloadSpec:
    """A dotted relationship path plus conditions for its last segment."""

    schema: str
    conditions: tuple[Any, ...] = ()


@dataclass
class Search:
    """Conditions and modifiers attached to one operation."""

    where_conditions: list[tuple[Any, tuple[Any, ...]]] = field(default_factory=list)
    orders: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    joins: list[str] = field(default_factory=list)
    selects: list[str] = field(default_factory=list)
    omits: list[str] = field(default_factory=list)
    table_name: str | None = None
    unscoped: bool = False
    preload: list[PreloadSpec] = field(default_factory=list)

    def where(self, query: Any, *args: Any) -> Search:
        self.where_conditions.append((query, args))
        return self

    def order(self, value: str) -> Search:
        self.orders.append(value)
        return self

    def join(self, clause: str) -> Search:
        self.joins.append(clause)
        return self

    def add_preload(self, schema: str, *conditions: Any) -> Search:
        self.preload.append(PreloadSpec(schema, tuple(conditions)))
        return self

    def copy(self) -> Search:
        return Search(
            where_conditions=list(self.where_conditions),
            orders=list(self.orders),
            limit=self.limit,
            offset=self.offset,
            joins=list(self.joins),
            selects=list(self.selects),
            omits=list(self.omits),
            table_name=self.table_name,
            unscoped=self.unscoped,
            preload=list(self.preload),
        )


@dataclass
class Options:
    """Typed per-operation settings read by later steps.

    ``update_interface`` holds caller-supplied attributes (attribute or
    column names); ``ASSIGN_UPDATING_ATTRS`` turns it into ``update_attrs``
    keyed by column. ``update_column`` marks a narrow column patch that
    skips timestamps and save hooks. The ``*_option`` strings are appended
    verbatim to the generated statement.
    """

    update_interface: dict[str, Any] | None = None
    update_attrs: dict[str, Any] | None = None
    update_column: bool = False
    order_by_pk: Literal["ASC", "DESC"] | None = None
    insert_option: str | None = None
    update_option: str | None = None
    delete_option: str | None = None
    query_option: str | None = None
    save_associations: bool = True
    ignore_protected_attrs: bool = False
    blank_columns_with_default: list[str] = field(default_factory=list)


class OperationContext:
    """Mutable state for a single pipeline run."""

    def __init__(
        self,
        value: Any,
        *,
        conn: Connection,
        dialect: Dialect,
        book: Book,
        model: ModelStruct | None = None,
        search: Search | None = None,
        options: Options | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.value = value
        self.conn = conn
        self.dialect = dialect
        self.book = book
        self.now = now
        self.search = search or Search()
        self.options = options or Options()
        self.sql = ""
        self.sql_vars: list[Any] = []
        self.rows_affected = 0
        self._model = model

    @property
    def model(self) -> ModelStruct:
        if self._model is None:
            value = self.value
            if is_record(value) or isinstance(value, type):
                self._model = get_model_struct(value)
            elif isinstance(value, list) and value and is_record(value[0]):
                self._model = get_model_struct(value[0])
            else:
                raise UnsupportedDestinationError(value)
        return self._model

    @model.setter
    def model(self, model: ModelStruct) -> None:
        self._model = model

    def records(self) -> list[Any]:
        """The record instances this context operates on."""
        if isinstance(self.value, list):
            return [v for v in self.value if is_record(v)]
        if is_record(self.value):
            return [self.value]
        return []

    def clone(self, value: Any = None, *, model: ModelStruct | None = None) -> OperationContext:
        return OperationContext(
            value,
            conn=self.conn,
            dialect=self.dialect,
            book=self.book,
            model=model,
            options=Options(save_associations=self.options.save_associations),
            now=self.now,
        )

    def __repr__(self) -> str:
        model = self._model.model_type.__name__ if self._model else type(self.value).__name__
        return f"OperationContext(model={model}, sql={self.sql!r}, vars={len(self.sql_vars)})"


__all__ = ["OperationContext", "Options", "PreloadSpec", "Search", "utcnow"]
