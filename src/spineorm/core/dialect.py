"""SQL dialect abstraction for the operation pipeline.

Provides a ``Dialect`` protocol and concrete implementations for every
supported backend. Pipeline steps use ``Dialect`` methods to quote
identifiers, render positional placeholders and ask narrow capability
questions ("does this backend return the generated key inline?") without
importing any database driver.

Manifesto:
    The pipeline must produce portable SQL. Anything backend-specific is a
    method here, and the few family branches the engine needs (QL wraps
    statements in transaction text) are decided by ``name``.

    - **One interface:** Dialect protocol for all SQL fragments
    - **Zero coupling:** Steps never import database drivers
    - **Narrow branches:** Only capability questions, no SQL dialect quirks

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                     Dialect Abstraction Layer                     │
    └──────────────────────────────────────────────────────────────────┘

    Pipeline step:
    ┌────────────────────────────────────────────────────────────────┐
    │  cols = d.quote("name")                                        │
    │  ph = d.placeholder(len(ctx.sql_vars) - 1)                     │
    │  sql += d.last_insert_id_returning_suffix(table, pk)           │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌──────────┐ ┌──────────────┐ ┌──────────┐ ┌──────────────┐
    │ SQLite   │ │ PostgreSQL   │ │ MySQL    │ │ QL           │
    │ "col" ?  │ │ "col" %s     │ │ `col` %s │ │ col $1       │
    │ lastrowid│ │ RETURNING    │ │ lastrowid│ │ id() rewrite │
    └──────────┘ └──────────────┘ └──────────┘ └──────────────┘

Examples:
    >>> from spineorm.core.dialect import get_dialect
    >>> d = get_dialect("postgresql")
    >>> d.quote("users")
    '"users"'
    >>> d.last_insert_id_returning_suffix('"users"', '"id"')
    'RETURNING "users"."id"'

Guardrails:
    ❌ DON'T: Branch on driver classes inside pipeline steps
    ✅ DO: Ask the dialect, or use is_ql() for the one documented family

Tags:
    dialect, sql, abstraction, portability, database, spine-orm

Doc-Types:
    - API Reference
    - Database Portability Guide
"""

from __future__ import annotations

from contextlib import closing
from typing import Any, Protocol, runtime_checkable

from spineorm.core.errors import ConfigError
from spineorm.core.protocols import Connection


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) valid for the target
    backend, except ``has_column`` which queries the backend catalog.
    """

    @property
    def name(self) -> str:
        """Backend family name (e.g. ``'sqlite'``, ``'ql'``)."""
        ...

    def quote(self, identifier: str) -> str:
        """Quote a table or column identifier."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index).

        ``index`` is ignored by dialects that use anonymous placeholders
        (SQLite ``?``, MySQL ``%s``) but required by numbered styles
        (QL ``$1``).
        """
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list starting at index 0."""
        ...

    def query_field_name(self, quoted_table: str) -> str:
        """Prefix used to qualify a column with its table (``'"t".'``)."""
        ...

    def last_insert_id_returning_suffix(self, table: str, column: str) -> str:
        """Suffix that makes INSERT return the generated key, or ``''``."""
        ...

    def has_column(self, conn: Connection, table: str, column: str) -> bool:
        """Whether ``table`` has a column named ``column``."""
        ...

    def select_from_dummy_table(self) -> str:
        """``FROM`` clause needed by a constant ``SELECT``, or ``''``."""
        ...


def _catalog_has_row(conn: Connection, sql: str, params: tuple) -> bool:
    with closing(conn.execute(sql, params)) as cursor:
        return cursor.fetchone() is not None


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, key from ``lastrowid``."""

    @property
    def name(self) -> str:
        return "sqlite"

    def quote(self, identifier: str) -> str:
        return f'"{identifier}"'

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def query_field_name(self, quoted_table: str) -> str:
        return f"{quoted_table}."

    def last_insert_id_returning_suffix(self, table: str, column: str) -> str:  # noqa: ARG002
        return ""

    def has_column(self, conn: Connection, table: str, column: str) -> bool:
        with closing(conn.execute(f'PRAGMA table_info("{table}")')) as cursor:
            return any(row[1] == column for row in cursor.fetchall())

    def select_from_dummy_table(self) -> str:
        return ""


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg2), ``RETURNING``.

    The generated key comes back from the INSERT itself, so the create
    step scans it instead of asking for a last-insert id.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    def quote(self, identifier: str) -> str:
        return f'"{identifier}"'

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def query_field_name(self, quoted_table: str) -> str:
        return f"{quoted_table}."

    def last_insert_id_returning_suffix(self, table: str, column: str) -> str:
        return f"RETURNING {table}.{column}"

    def has_column(self, conn: Connection, table: str, column: str) -> bool:
        return _catalog_has_row(
            conn,
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = CURRENT_SCHEMA() AND table_name = %s AND column_name = %s",
            (table, column),
        )

    def select_from_dummy_table(self) -> str:
        return ""


class MySQLDialect:
    """MySQL dialect: backtick quoting, ``%s`` placeholders.

    Compatible with ``mysql.connector`` and ``PyMySQL`` (both use
    ``%s`` format paramstyle).
    """

    @property
    def name(self) -> str:
        return "mysql"

    def quote(self, identifier: str) -> str:
        return f"`{identifier}`"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def query_field_name(self, quoted_table: str) -> str:
        return f"{quoted_table}."

    def last_insert_id_returning_suffix(self, table: str, column: str) -> str:  # noqa: ARG002
        return ""

    def has_column(self, conn: Connection, table: str, column: str) -> bool:
        return _catalog_has_row(
            conn,
            "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND COLUMN_NAME = %s",
            (table, column),
        )

    def select_from_dummy_table(self) -> str:
        return "FROM DUAL"


class QLDialect:
    """QL dialect: bare identifiers, ``$1`` numbered placeholders.

    QL has no auto-increment column: the row identity is the ``id()``
    function. The pipeline wraps write statements in transaction text and
    rewrites ``WHERE id = $N`` after create (see ``hooks.ql``).
    """

    def __init__(self, name: str = "ql") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def quote(self, identifier: str) -> str:
        return identifier

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"

    def placeholders(self, count: int) -> str:
        return ", ".join(f"${i + 1}" for i in range(count))

    def query_field_name(self, quoted_table: str) -> str:  # noqa: ARG002
        return ""

    def last_insert_id_returning_suffix(self, table: str, column: str) -> str:  # noqa: ARG002
        return ""

    def has_column(self, conn: Connection, table: str, column: str) -> bool:
        return _catalog_has_row(
            conn,
            "SELECT Name FROM __Column WHERE TableName = $1 AND Name = $2",
            (table, column),
        )

    def select_from_dummy_table(self) -> str:
        return ""


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "sqlite3": SQLiteDialect(),  # alias
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "ql": QLDialect("ql"),
    "ql-mem": QLDialect("ql-mem"),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'sqlite'``, ``'postgresql'``, ``'postgres'``,
                 ``'mysql'``, ``'ql'``, ``'ql-mem'``.

    Returns:
        Pre-instantiated :class:`Dialect` for the requested backend.

    Raises:
        ConfigError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ConfigError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'sqlite3'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation.

    Useful for third-party database drivers or test doubles.
    """
    _DIALECTS[name.lower()] = dialect


def is_ql(dialect: Any) -> bool:
    """Whether ``dialect`` belongs to the QL family (``ql`` / ``ql-mem``)."""
    return dialect.name in ("ql", "ql-mem")


def wrap_transaction(sql: str) -> str:
    """Wrap a statement in QL transaction text."""
    return f"BEGIN TRANSACTION;\n\t{sql};\nCOMMIT;"


__all__ = [
    # Protocol
    "Dialect",
    # Implementations
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "QLDialect",
    # Factory
    "get_dialect",
    "register_dialect",
    "is_ql",
    "wrap_transaction",
]
