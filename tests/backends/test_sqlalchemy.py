"""Tests for the SQLAlchemy Connection bridge (runs over in-memory SQLite)."""

import pytest

pytest.importorskip("sqlalchemy")

from sqlalchemy.orm import Session  # noqa: E402

from spineorm.backends.sqlalchemy import SAConnectionBridge, create_orm_engine  # noqa: E402
from spineorm.core.dialect import get_dialect  # noqa: E402
from spineorm.core.transaction import transaction  # noqa: E402
from spineorm.db import DB  # noqa: E402
from tests._support.models import Widget  # noqa: E402

pytestmark = pytest.mark.sqlalchemy


@pytest.fixture
def bridge():
    engine = create_orm_engine("sqlite://")
    session = Session(bind=engine)
    conn = SAConnectionBridge(session)
    conn.execute(
        "CREATE TABLE widgets (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL DEFAULT '')"
    )
    session.commit()
    yield conn
    conn.close()
    engine.dispose()


class TestBridge:
    @pytest.mark.parametrize(
        "sql", ["SELECT ? AS a, ? AS b", "SELECT %s AS a, %s AS b", "SELECT $1 AS a, $2 AS b"]
    )
    def test_placeholder_styles(self, bridge, sql):
        cursor = bridge.execute(sql, (1, "x"))
        assert [d[0] for d in cursor.description] == ["a", "b"]
        assert cursor.fetchone() == (1, "x")
        cursor.close()

    def test_marks_inside_literals_kept(self, bridge):
        cursor = bridge.execute("SELECT 'who? %s $1' AS a, ? AS b, 'it''s?' AS c", ("x",))
        assert cursor.fetchone() == ("who? %s $1", "x", "it's?")
        cursor.close()

    def test_write_has_no_description(self, bridge):
        cursor = bridge.execute("INSERT INTO widgets (name) VALUES (?)", ("w",))
        assert cursor.description is None
        assert cursor.rowcount == 1
        assert cursor.lastrowid == 1

    def test_transaction_flag(self, bridge):
        assert bridge.in_transaction is False
        with transaction(bridge):
            assert bridge.in_transaction is True
        assert bridge.in_transaction is False

    def test_rollback(self, bridge):
        with pytest.raises(RuntimeError):
            with transaction(bridge):
                bridge.execute("INSERT INTO widgets (name) VALUES (?)", ("gone",))
                raise RuntimeError("abort")
        assert bridge.execute("SELECT COUNT(*) FROM widgets").fetchone() == (0,)


class TestPipelineOverBridge:
    def test_create_and_find(self, bridge):
        db = DB(bridge, get_dialect("sqlite"))
        widget = Widget(name="w")
        assert db.create(widget) == 1
        assert widget.id == 1
        assert [(w.id, w.name) for w in db.find(Widget, "name = ?", "w")] == [(1, "w")]

    def test_update_and_delete(self, bridge):
        db = DB(bridge, get_dialect("sqlite"))
        widget = Widget(name="w")
        db.create(widget)
        widget.name = "renamed"
        assert db.update(widget) == 1
        assert db.first(Widget).name == "renamed"
        assert db.delete(widget) == 1
        assert db.find(Widget) == []
