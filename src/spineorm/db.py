"""The ``DB`` entry surface.

Pairs a :class:`~spineorm.core.protocols.Connection` with a
:class:`~spineorm.core.dialect.Dialect` and a :class:`~spineorm.hooks.Book`
and turns each call into one pipeline run on a fresh
:class:`~spineorm.engine.context.OperationContext`.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                               DB                                   │
    │                                                                    │
    │   conn / dialect / book / settings     (shared by every copy)      │
    │   search / options                     (per-chain, copied)         │
    │                                                                    │
    │   where() order() limit() offset() preload() select() omit()       │
    │   table() unscoped() options()      → new DB, receiver untouched   │
    │                                                                    │
    │   create(record)                    → CREATE driver                │
    │   find() first() last()             → QUERY driver                 │
    │   update() update_column()          → UPDATE driver                │
    │   delete()                          → DELETE driver                │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> db = DB.open("memory")
    >>> db.conn.executescript(SCHEMA)           # doctest: +SKIP
    >>> user = User(name="jinzhu")              # doctest: +SKIP
    >>> db.create(user)                         # doctest: +SKIP
    1
    >>> db.preload("emails").find(User)         # doctest: +SKIP
    [User(id=1, name='jinzhu', emails=[])]

Tags:
    spine-orm, db, facade, crud

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from spineorm.core.connection import ConnectionInfo, create_connection
from spineorm.core.dialect import Dialect, get_dialect
from spineorm.core.errors import UnsupportedDestinationError, UsageError
from spineorm.core.logging import configure_logging, get_logger, operation_scope
from spineorm.core.protocols import Connection
from spineorm.core.settings import ORMSettings
from spineorm.core.transaction import transaction
from spineorm.engine.context import OperationContext, Options, Search
from spineorm.engine.scan import new_record
from spineorm.hooks.book import Book, Group, Step
from spineorm.hooks.defaults import default_book
from spineorm.model.struct import get_model_struct, is_record

logger = get_logger(__name__)

_OPTION_NAMES = frozenset(f.name for f in dataclasses.fields(Options))


class DB:
    """Chainable entry point for the four CRUD pipelines.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect matching ``conn``.
        book: Step registry; defaults to :func:`default_book`.
        settings: Pipeline defaults (``save_associations``,
                  ``order_by_pk_direction``).
    """

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect,
        *,
        book: Book | None = None,
        settings: ORMSettings | None = None,
        info: ConnectionInfo | None = None,
    ) -> None:
        self.conn = conn
        self.dialect = dialect
        self.book = book or default_book()
        self.settings = settings or ORMSettings()
        self.info = info
        self._search = Search()
        self._options: dict[str, Any] = {}

    @classmethod
    def open(cls, url: str | None = None, settings: ORMSettings | None = None) -> DB:
        """Connect from a URL (or ``settings.database_url``) and configure logging."""
        settings = settings or ORMSettings()
        configure_logging(
            level=settings.log_level,
            json_format=settings.log_format == "json",
            sql_preview=settings.log_sql_preview,
        )
        conn, info = create_connection(url if url is not None else settings.database_url)
        dialect = get_dialect(settings.dialect or info.backend)
        logger.info("db_opened", backend=info.backend, dialect=dialect.name)
        return cls(conn, dialect, settings=settings, info=info)

    # -- Chaining ----------------------------------------------------------

    def _spawn(self) -> DB:
        other = DB(
            self.conn, self.dialect, book=self.book, settings=self.settings, info=self.info
        )
        other._search = self._search.copy()
        other._options = dict(self._options)
        return other

    def where(self, query: Any, *args: Any) -> DB:
        other = self._spawn()
        other._search.where(query, *args)
        return other

    def order(self, value: str) -> DB:
        other = self._spawn()
        other._search.order(value)
        return other

    def limit(self, value: int) -> DB:
        other = self._spawn()
        other._search.limit = value
        return other

    def offset(self, value: int) -> DB:
        other = self._spawn()
        other._search.offset = value
        return other

    def joins(self, clause: str) -> DB:
        other = self._spawn()
        other._search.join(clause)
        return other

    def select(self, *columns: str) -> DB:
        other = self._spawn()
        other._search.selects.extend(columns)
        return other

    def omit(self, *columns: str) -> DB:
        other = self._spawn()
        other._search.omits.extend(columns)
        return other

    def table(self, name: str) -> DB:
        other = self._spawn()
        other._search.table_name = name
        return other

    def unscoped(self) -> DB:
        other = self._spawn()
        other._search.unscoped = True
        return other

    def preload(self, schema: str, *conditions: Any) -> DB:
        """Eager-load the dotted relationship path ``schema``.

        ``conditions`` (a query followed by its arguments) narrow only the
        last segment of the path.
        """
        other = self._spawn()
        other._search.add_preload(schema, *conditions)
        return other

    def options(self, **kwargs: Any) -> DB:
        unknown = set(kwargs) - _OPTION_NAMES
        if unknown:
            raise UsageError(f"unknown options: {sorted(unknown)}")
        other = self._spawn()
        other._options.update(kwargs)
        return other

    # -- Context -----------------------------------------------------------

    def _context(self, value: Any, *, model: Any = None, **options: Any) -> OperationContext:
        opts = Options(save_associations=self.settings.save_associations)
        for name, setting in {**self._options, **options}.items():
            setattr(opts, name, setting)
        return OperationContext(
            value,
            conn=self.conn,
            dialect=self.dialect,
            book=self.book,
            model=get_model_struct(model) if model is not None else None,
            search=self._search.copy(),
            options=opts,
        )

    def _run(self, group: Group, step: Step, ctx: OperationContext) -> OperationContext:
        with operation_scope(operation=group.value, model=ctx.model.model_type.__name__):
            self.book.must_exec(group, step, ctx)
        return ctx

    # -- Operations --------------------------------------------------------

    def create(self, record: Any) -> int:
        """Insert ``record`` (and cascade its associations); return rows affected."""
        if not is_record(record):
            raise UnsupportedDestinationError(record)
        return self._run(Group.CREATE, Step.CREATE, self._context(record)).rows_affected

    def find(self, dest: Any, *where: Any, model: Any = None) -> Any:
        """Fill ``dest`` with every matching row.

        ``dest`` may be a list (element type taken from its first item or
        ``model``), a record instance, or a record type, in which case a new
        list is returned.
        """
        if isinstance(dest, type):
            model, dest = dest, []
        ctx = self._context(dest, model=model)
        if where:
            ctx.search.where(where[0], *where[1:])
        self._run(Group.QUERY, Step.QUERY, ctx)
        return dest

    def _one(self, dest: Any, where: tuple[Any, ...], direction: str) -> Any:
        if isinstance(dest, type):
            dest = new_record(get_model_struct(dest))
        ctx = self._context(dest, order_by_pk=direction)
        ctx.search.limit = 1
        if where:
            ctx.search.where(where[0], *where[1:])
        self._run(Group.QUERY, Step.QUERY, ctx)
        return dest

    def first(self, dest: Any, *where: Any) -> Any:
        """First matching record by primary key; ``RecordNotFoundError`` if none."""
        return self._one(dest, where, self.settings.order_by_pk_direction)

    def last(self, dest: Any, *where: Any) -> Any:
        direction = "DESC" if self.settings.order_by_pk_direction == "ASC" else "ASC"
        return self._one(dest, where, direction)

    def update(self, target: Any, attrs: dict[str, Any] | None = None, *where: Any) -> int:
        """Update ``target`` (a record or record type); return rows affected.

        Without ``attrs`` every changeable column of the record is written.
        """
        ctx = self._context(target, update_interface=attrs)
        if where:
            ctx.search.where(where[0], *where[1:])
        return self._run(Group.UPDATE, Step.UPDATE, ctx).rows_affected

    def update_column(self, target: Any, attrs: dict[str, Any], *where: Any) -> int:
        """Write ``attrs`` only: no timestamp, no save/update callbacks."""
        ctx = self._context(target, update_interface=attrs, update_column=True)
        if where:
            ctx.search.where(where[0], *where[1:])
        return self._run(Group.UPDATE, Step.UPDATE, ctx).rows_affected

    def delete(self, target: Any, *where: Any) -> int:
        ctx = self._context(target)
        if where:
            ctx.search.where(where[0], *where[1:])
        return self._run(Group.DELETE, Step.DELETE, ctx).rows_affected

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[DB, None, None]:
        """Group several operations; steps join the open transaction."""
        with transaction(self.conn):
            yield self

    def close(self) -> None:
        self.conn.close()

    def __repr__(self) -> str:
        return f"DB(dialect={self.dialect.name!r}, book={self.book!r})"


__all__ = ["DB"]
