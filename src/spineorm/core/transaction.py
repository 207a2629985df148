"""Explicit transactions for write steps.

``transaction(conn)`` is the only place the engine begins, commits or rolls
back. Update, delete and create steps wrap their statement in it.

Lifecycle::

    ┌──────────────────────────────────────────────┐
    │ 1. conn already in a transaction? join it     │
    │ 2. begin()                                    │
    │ 3. ─── yield ───  (statement runs)            │
    │ 4a. commit()            (on success)          │
    │ 4b. rollback(), re-raise (on failure)         │
    │ 4c. RollbackError       (rollback failed too) │
    └──────────────────────────────────────────────┘

A joined transaction belongs to the caller that opened it: the helper
neither commits nor rolls back, the exception simply propagates.

Tags:
    transaction, commit, rollback, spine-orm
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import closing, contextmanager
from typing import Any

from spineorm.core.errors import ORMError, QueryError, RollbackError, TransactionError
from spineorm.core.logging import get_logger
from spineorm.core.protocols import Connection, Cursor

logger = get_logger(__name__)


@contextmanager
def transaction(conn: Connection) -> Generator[Connection, None, None]:
    """Run the body inside an explicit transaction on ``conn``."""
    if conn.in_transaction:
        yield conn
        return

    try:
        conn.begin()
    except Exception as exc:
        raise TransactionError("begin transaction failed", cause=exc) from exc

    try:
        yield conn
    except BaseException as exc:
        try:
            conn.rollback()
        except Exception as rollback_exc:
            logger.error(
                "rollback_failed",
                error=str(rollback_exc),
                original_error=str(exc),
            )
            raise RollbackError(
                "rollback failed", cause=rollback_exc
            ).with_context(original_error=repr(exc)) from rollback_exc
        raise

    try:
        conn.commit()
    except Exception as exc:
        raise TransactionError("commit failed", cause=exc) from exc


def execute(conn: Connection, sql: str, params: list[Any] | tuple = ()) -> Cursor:
    """Execute one statement, wrapping driver failures in :class:`QueryError`."""
    try:
        return conn.execute(sql, tuple(params))
    except ORMError:
        raise
    except Exception as exc:
        raise QueryError(str(exc), cause=exc).with_context(sql=sql) from exc


def exec_affected(conn: Connection, sql: str, params: list[Any] | tuple = ()) -> tuple[int, Any]:
    """Execute a write statement; return ``(rowcount, lastrowid)``."""
    with closing(execute(conn, sql, params)) as cursor:
        return cursor.rowcount, cursor.lastrowid


__all__ = ["transaction", "execute", "exec_affected"]
