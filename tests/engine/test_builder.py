"""Tests for WHERE/SELECT building."""

import pytest

from spineorm.core.errors import UsageError
from spineorm.engine.builder import (
    build_condition,
    combined_condition,
    expand_placeholders,
    prepare_query,
)
from spineorm.model import get_model_struct
from tests._support.models import Article, User, Widget


class TestExpandPlaceholders:
    def test_scalar_and_list_arguments(self, recording_ctx):
        ctx = recording_ctx(User, dialect="ql")
        text = expand_placeholders(ctx, "age > ? AND name IN (?)", (18, ["a", "b"]))
        assert text == "age > $1 AND name IN ($2, $3)"
        assert ctx.sql_vars == [18, "a", "b"]

    def test_not_enough_arguments(self, recording_ctx):
        with pytest.raises(UsageError, match="not enough arguments"):
            expand_placeholders(recording_ctx(User), "a = ? AND b = ?", (1,))

    def test_no_arguments_leaves_text(self, recording_ctx):
        ctx = recording_ctx(User)
        assert expand_placeholders(ctx, "name = 'who?'", ()) == "name = 'who?'"
        assert ctx.sql_vars == []

    def test_marks_inside_literals_kept(self, recording_ctx):
        ctx = recording_ctx(User, dialect="ql")
        text = expand_placeholders(ctx, "name = 'it''s ?' OR age > ? OR bio = '?'", (18,))
        assert text == "name = 'it''s ?' OR age > $1 OR bio = '?'"
        assert ctx.sql_vars == [18]


class TestBuildCondition:
    def test_string(self, recording_ctx):
        ctx = recording_ctx(User)
        assert build_condition(ctx, "name = ?", ("jinzhu",)) == "(name = ?)"

    def test_dict_with_null(self, recording_ctx):
        ctx = recording_ctx(User)
        sql = build_condition(ctx, {"name": "jinzhu", "company_id": None}, ())
        assert sql == '("users"."name" = ? AND "users"."company_id" IS NULL)'
        assert ctx.sql_vars == ["jinzhu"]

    def test_primary_key_scalar_and_list(self, recording_ctx):
        ctx = recording_ctx(User)
        assert build_condition(ctx, 7, ()) == '("users"."id" = ?)'
        assert build_condition(ctx, [1, 2], ()) == '("users"."id" IN (?, ?))'
        assert ctx.sql_vars == [7, 1, 2]

    def test_record_condition_rejected(self, recording_ctx):
        with pytest.raises(UsageError):
            build_condition(recording_ctx(User), User(id=1), ())


class TestCombinedCondition:
    def test_record_key_comes_first(self, recording_ctx):
        ctx = recording_ctx(User(id=3))
        ctx.search.where("age > ?", 20)
        assert combined_condition(ctx) == 'WHERE "users"."id" = ? AND (age > ?)'
        assert ctx.sql_vars == [3, 20]

    def test_blank_key_adds_nothing(self, recording_ctx):
        assert combined_condition(recording_ctx(User())) == ""

    def test_soft_delete_filter(self, recording_ctx):
        ctx = recording_ctx(Article)
        assert combined_condition(ctx) == 'WHERE "articles"."deleted_at" IS NULL'

    def test_unscoped_drops_soft_delete_filter(self, recording_ctx):
        ctx = recording_ctx(Article)
        ctx.search.unscoped = True
        assert combined_condition(ctx) == ""

    def test_order_limit_offset(self, recording_ctx):
        ctx = recording_ctx(Widget, dialect="postgresql")
        ctx.search.order("name DESC")
        ctx.search.limit = 5
        ctx.search.offset = 10
        assert combined_condition(ctx) == "ORDER BY name DESC LIMIT 5 OFFSET 10"

    def test_sqlite_offset_without_limit(self, recording_ctx):
        ctx = recording_ctx(Widget)
        ctx.search.offset = 4
        assert combined_condition(ctx) == "LIMIT -1 OFFSET 4"

    def test_no_pagination(self, recording_ctx):
        ctx = recording_ctx(Widget)
        ctx.search.limit = 1
        ctx.search.order("id")
        assert combined_condition(ctx, pagination=False) == ""

    def test_numbered_placeholders_follow_binding_order(self, recording_ctx):
        ctx = recording_ctx(Widget(id=9), dialect="ql")
        ctx.search.where({"name": "x"})
        assert combined_condition(ctx) == "WHERE id = $1 AND (name = $2)"


class TestPrepareQuery:
    def test_plain(self, recording_ctx):
        ctx = recording_ctx([], model=get_model_struct(Widget))
        assert prepare_query(ctx) == 'SELECT * FROM "widgets"'

    def test_join_projects_table(self, recording_ctx):
        ctx = recording_ctx(Widget)
        ctx.search.join('INNER JOIN "gadgets" ON "gadgets"."id" = "widgets"."id"')
        assert prepare_query(ctx).startswith('SELECT "widgets".* FROM "widgets" INNER JOIN')

    def test_selects_and_table_override(self, recording_ctx):
        ctx = recording_ctx(Widget)
        ctx.search.selects = ["id"]
        ctx.search.table_name = "archived_widgets"
        assert prepare_query(ctx) == 'SELECT id FROM "archived_widgets"'
