"""Tests for the query pipeline."""

import pytest

from spineorm.core.errors import RecordNotFoundError, UnsupportedDestinationError
from spineorm.engine.context import Options
from spineorm.hooks.book import Group, Step
from spineorm.model import get_model_struct
from tests._support.models import Article, User, Widget


@pytest.fixture
def widgets(conn):
    for name in ("a", "b", "c"):
        conn.execute("INSERT INTO widgets (name) VALUES (?)", (name,))


def run(book, ctx):
    book.must_exec(Group.QUERY, Step.QUERY, ctx)
    return ctx


class TestDestinations:
    def test_list_destination_replaced_in_place(self, sqlite_ctx, book, widgets):
        dest = [Widget(name="stale")]
        ctx = run(book, sqlite_ctx(dest, model=get_model_struct(Widget)))
        assert [w.name for w in dest] == ["a", "b", "c"]
        assert ctx.rows_affected == 3

    def test_single_record(self, sqlite_ctx, book, widgets):
        widget = Widget(id=2)
        run(book, sqlite_ctx(widget))
        assert widget.name == "b"

    def test_empty_list(self, sqlite_ctx, book):
        dest = []
        run(book, sqlite_ctx(dest, model=get_model_struct(Widget)))
        assert dest == []

    def test_not_found(self, sqlite_ctx, book):
        with pytest.raises(RecordNotFoundError) as exc_info:
            run(book, sqlite_ctx(Widget(id=99)))
        assert exc_info.value.context.table == "widgets"

    def test_unsupported_destination(self, sqlite_ctx, book):
        with pytest.raises(UnsupportedDestinationError):
            run(book, sqlite_ctx({"id": 1}, model=get_model_struct(Widget)))


class TestOrdering:
    def test_order_by_primary_key(self, sqlite_ctx, book, widgets):
        dest = []
        ctx = sqlite_ctx(dest, model=get_model_struct(Widget), options=Options(order_by_pk="DESC"))
        ctx.search.limit = 1
        run(book, ctx)
        assert dest[0].name == "c"
        assert 'ORDER BY "widgets"."id" DESC LIMIT 1' in ctx.sql

    def test_explicit_order_wins(self, sqlite_ctx, book, widgets):
        dest = []
        ctx = sqlite_ctx(dest, model=get_model_struct(Widget), options=Options(order_by_pk="ASC"))
        ctx.search.order("name DESC")
        run(book, ctx)
        assert [w.name for w in dest] == ["c", "b", "a"]

    def test_query_option_appended(self, sqlite_ctx, book, widgets):
        ctx = sqlite_ctx([], model=get_model_struct(Widget), options=Options(query_option="LIMIT 2"))
        run(book, ctx)
        assert ctx.sql.endswith(" LIMIT 2")
        assert len(ctx.value) == 2


class TestSoftDeleteFilter:
    def test_deleted_rows_hidden_unless_unscoped(self, conn, sqlite_ctx, book):
        conn.execute("INSERT INTO articles (title) VALUES ('live')")
        conn.execute("INSERT INTO articles (title, deleted_at) VALUES ('gone', '2024-01-01 00:00:00')")
        visible = []
        run(book, sqlite_ctx(visible, model=get_model_struct(Article)))
        assert [a.title for a in visible] == ["live"]

        everything = []
        ctx = sqlite_ctx(everything, model=get_model_struct(Article))
        ctx.search.unscoped = True
        run(book, ctx)
        assert len(everything) == 2
        assert everything[1].deleted_at is not None


class TestAfterFind:
    def test_called_per_record(self, conn, sqlite_ctx, book):
        conn.execute("INSERT INTO users (name) VALUES ('a'), ('b')")
        users = []
        run(book, sqlite_ctx(users, model=get_model_struct(User)))
        assert [u.calls for u in users] == [["after_find"], ["after_find"]]
