"""SQLAlchemy engine factory and Connection bridge.

Manifesto:
    The pipeline speaks the ``Connection`` protocol. For servers such as
    PostgreSQL the driver, pooling and URL handling come from SQLAlchemy;
    ``SAConnectionBridge`` wraps a ``Session`` so those backends plug in
    without the steps knowing.

This module provides:

* ``create_orm_engine``   -- Create a SA engine from a URL.
* ``SAConnectionBridge``  -- Wraps a SA ``Session`` to satisfy the
  ``spineorm.core.protocols.Connection`` protocol.

Requires the ``sqlalchemy`` optional extra::

    pip install spine-orm[sqlalchemy]

Tags:
    spine-orm, sqlalchemy, session, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

try:
    from sqlalchemy import create_engine as _sa_create_engine
    from sqlalchemy import text
    from sqlalchemy.engine import CursorResult, Engine
    from sqlalchemy.orm import Session
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "spineorm.backends.sqlalchemy requires sqlalchemy. "
        "Install it with: pip install spine-orm[sqlalchemy]"
    ) from exc

# ?, %s and $1 placeholders, rewritten to :p0, :p1, ... for text().
# Single-quoted literals are matched first so their contents stay verbatim.
_PLACEHOLDER = re.compile(r"'(?:[^']|'')*'|\?|%s|\$\d+")


def create_orm_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Pool parameters are ignored for SQLite URLs.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        return _sa_create_engine(url, echo=echo, **kwargs)

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class _ResultCursor:
    """DB-API style view over a ``CursorResult``."""

    def __init__(self, result: CursorResult) -> None:
        self._result = result

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        if not self._result.returns_rows:
            return None
        return [(k, None, None, None, None, None, None) for k in self._result.keys()]

    @property
    def rowcount(self) -> int:
        return self._result.rowcount

    @property
    def lastrowid(self) -> Any:
        try:
            return self._result.lastrowid
        except Exception:  # noqa: BLE001 - not every driver exposes it
            return None

    def fetchone(self) -> tuple[Any, ...] | None:
        row = self._result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        return [tuple(r) for r in self._result.fetchall()]

    def close(self) -> None:
        self._result.close()


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``Connection``.

    Implements: ``execute``, ``begin``, ``commit``, ``rollback``,
    ``in_transaction``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._explicit = False

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> _ResultCursor:
        if not parameters:
            return _ResultCursor(self._session.execute(text(sql)))

        # Positional placeholders become :p0, :p1 ... for text()
        counter = iter(range(len(parameters)))

        def bind(match: re.Match[str]) -> str:
            if match.group().startswith("'"):
                return match.group()
            return f":p{next(counter)}"

        rewritten = _PLACEHOLDER.sub(bind, sql)
        mapping = {f"p{i}": v for i, v in enumerate(parameters)}
        return _ResultCursor(self._session.execute(text(rewritten), mapping))

    # --- transaction ---

    def begin(self) -> None:
        # The session autobegins on first execute; only the flag is ours
        self._explicit = True

    def commit(self) -> None:
        self._explicit = False
        self._session.commit()

    def rollback(self) -> None:
        self._explicit = False
        self._session.rollback()

    @property
    def in_transaction(self) -> bool:
        return self._explicit

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session

    def close(self) -> None:
        self._session.close()


__all__ = ["create_orm_engine", "SAConnectionBridge"]
