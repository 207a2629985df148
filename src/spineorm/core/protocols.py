"""
Canonical protocol definitions for spine-orm.

The engine talks to a database only through the shapes defined here. Any
object that matches ``Connection`` works: the bundled SQLite adapter, the
SQLAlchemy session bridge, or a recording double in tests.

Manifesto:
    Protocols define contracts without inheritance. They enable:
    - **Decoupling:** Pipeline steps depend on shape, not on a driver
    - **Testability:** A fake connection exercises every dialect branch
    - **Portability:** Same steps on SQLite, PostgreSQL, MySQL, QL

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Cursor        - one executed statement (rows, rowcount, lastrowid)
        └── Connection    - sync DB protocol with explicit transactions

    Consumers:
        core/transaction.py, core/dialect.py (has_column),
        hooks/create.py, hooks/query.py, hooks/update.py,
        hooks/delete.py, hooks/preload.py

Guardrails:
    ❌ DON'T: Keep a cursor open past the step that created it
    ✅ DO: Wrap cursors in contextlib.closing()

    ❌ DON'T: Call begin/commit directly from steps
    ✅ DO: Use spineorm.core.transaction.transaction(conn)

Tags:
    protocol, connection, cursor, database, spine-orm, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """
    Result of a single executed statement (DB-API 2.0 subset).

    ``description`` is a sequence of 7-tuples whose first item is the
    column name; only the name is used.
    """

    @property
    def description(self) -> Any:
        ...

    @property
    def rowcount(self) -> int:
        ...

    @property
    def lastrowid(self) -> Any:
        ...

    def fetchone(self) -> Any:
        ...

    def fetchall(self) -> list:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface used by every pipeline step.

    Architecture:
        ::

            Connection Protocol:
            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params) → Cursor (caller closes it)       │
            │ begin()              → open explicit transaction        │
            │ commit()             → commit transaction               │
            │ rollback()           → rollback transaction             │
            │ in_transaction       → True while a transaction is open │
            └────────────────────────────────────────────────────────┘

            Implementations:
            ┌────────────────────────────────────────────────────────┐
            │ SqliteConnection   → stdlib sqlite3                    │
            │ SAConnectionBridge → SQLAlchemy Session                │
            └────────────────────────────────────────────────────────┘

    Examples:
        >>> with closing(conn.execute("SELECT id FROM users WHERE id = ?", (1,))) as cur:
        ...     row = cur.fetchone()
    """

    def execute(self, sql: str, params: tuple = ()) -> Cursor:
        """Execute one statement with positional parameters. SYNC."""
        ...

    def begin(self) -> None:
        """Open an explicit transaction. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...

    @property
    def in_transaction(self) -> bool:
        """Whether an explicit transaction is currently open."""
        ...
