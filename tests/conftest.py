"""
Shared pytest fixtures for spine-orm tests.

This module provides:
- An in-memory SQLite connection with the test schema loaded
- A ``DB`` bound to it and a fresh default ``Book``
- A statement trace for counting the queries a call issues
- A recording fake connection for dialects without a local driver

Usage:
    def test_something(db, statements):
        statements.clear()
        db.find(User)
        assert len(selects(statements)) == 1
"""

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from spineorm.backends.sqlite import SqliteConnection
from spineorm.core.dialect import Dialect, get_dialect
from spineorm.db import DB
from spineorm.engine.context import OperationContext
from spineorm.hooks.book import Book
from spineorm.hooks.defaults import default_book
from tests._support.models import SCHEMA
from tests._support.recording import RecordingConnection

_DB_FIXTURES = {"conn", "db", "sqlite_ctx"}


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests by whether they touch a real database."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration"}):
            continue
        if _DB_FIXTURES.intersection(getattr(item, "fixturenames", ())):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# SQLite
# =============================================================================


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with the test schema."""
    connection = SqliteConnection(":memory:")
    connection.executescript(SCHEMA)
    yield connection
    connection.close()


@pytest.fixture
def sqlite() -> Dialect:
    return get_dialect("sqlite")


@pytest.fixture
def book() -> Book:
    return default_book()


@pytest.fixture
def db(conn: SqliteConnection, sqlite: Dialect, book: Book) -> DB:
    return DB(conn, sqlite, book=book)


@pytest.fixture
def statements(conn: SqliteConnection) -> list[str]:
    """Every statement the SQLite connection runs from here on."""
    trace: list[str] = []
    conn.raw.set_trace_callback(trace.append)
    return trace


@pytest.fixture
def sqlite_ctx(conn: SqliteConnection, sqlite: Dialect, book: Book) -> Callable[..., OperationContext]:
    """Factory for contexts bound to the SQLite connection."""

    def make(value: Any, **kwargs: Any) -> OperationContext:
        return OperationContext(value, conn=conn, dialect=sqlite, book=book, **kwargs)

    return make


# =============================================================================
# Recording connection
# =============================================================================


@pytest.fixture
def recording() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def recording_ctx(recording: RecordingConnection, book: Book) -> Callable[..., OperationContext]:
    """Factory for contexts bound to the recording connection; ``dialect`` is a name."""

    def make(value: Any, dialect: str = "sqlite", **kwargs: Any) -> OperationContext:
        return OperationContext(
            value, conn=recording, dialect=get_dialect(dialect), book=book, **kwargs
        )

    return make


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    return str(tmp_path / "nested" / "orm.db")
