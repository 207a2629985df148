"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~spineorm.core.protocols.Connection` protocol.

The connection runs in autocommit mode (``isolation_level=None``) so that
transactions are always explicit: ``begin()`` issues ``BEGIN`` and the
pipeline's :func:`~spineorm.core.transaction.transaction` helper decides
when to commit or roll back.

Usage::

    from spineorm.backends.sqlite import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
    conn.begin()
    cur = conn.execute("INSERT INTO t (name) VALUES (?)", ("a",))
    cur.lastrowid                  # 1
    conn.commit()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Any


def _adapt(value: Any) -> Any:
    # sqlite3's default datetime adapters are deprecated; bind ISO text instead
    if isinstance(value, datetime):
        return value.isoformat(" ")
    if isinstance(value, date):
        return value.isoformat()
    return value


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Every ``execute`` returns a fresh cursor that the caller closes.
    """

    def __init__(self, path: str = ":memory:", *, row_factory: Any = None) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = row_factory
        self._conn.execute("PRAGMA foreign_keys=ON")

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, tuple(_adapt(p) for p in params))

    def executescript(self, script: str) -> None:
        self._conn.executescript(script)

    def begin(self) -> None:
        self._conn.execute("BEGIN")

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
