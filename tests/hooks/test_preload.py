"""Tests for the association preloader."""

from types import SimpleNamespace

import pytest

from spineorm.core.errors import PreloadPathError, UnsupportedRelationError
from spineorm.hooks.book import Group, Step
from spineorm.hooks.preload import in_condition, join_projection, preload_field
from spineorm.model import get_model_struct
from tests._support.models import Post, User
from tests._support.recording import selects


@pytest.fixture
def people(conn):
    conn.executescript(
        """
        INSERT INTO companies (id, name) VALUES (1, 'acme'), (2, 'globex');
        INSERT INTO users (id, name, company_id) VALUES
            (1, 'alice', 1), (2, 'bob', 2), (3, 'carol', 1), (4, 'dave', NULL);
        INSERT INTO profiles (id, user_id, bio) VALUES (1, 1, 'a'), (2, 3, 'c');
        INSERT INTO emails (id, user_id, email) VALUES
            (1, 1, 'a1@example.com'), (2, 1, 'a2@example.com'), (3, 2, 'b@example.com');
        INSERT INTO languages (id, name) VALUES (1, 'en'), (2, 'de'), (3, 'fr');
        INSERT INTO user_languages (user_id, language_id) VALUES (1, 1), (1, 2), (2, 2);
        INSERT INTO toys (id, name, owner_id, owner_type) VALUES
            (1, 'car', 1, 'users'), (2, 'ball', 1, 'pets'), (3, 'doll', 2, 'users');
        INSERT INTO posts (id, title, user_id) VALUES (1, 'p1', 1), (2, 'p2', 2), (3, 'p3', 1);
        """
    )


def load(book, sqlite_ctx, model, *paths):
    dest = []
    ctx = sqlite_ctx(dest, model=get_model_struct(model))
    ctx.search.order("id")
    for path in paths:
        if isinstance(path, tuple):
            ctx.search.add_preload(*path)
        else:
            ctx.search.add_preload(path)
    book.must_exec(Group.QUERY, Step.QUERY, ctx)
    return dest


class TestToMany:
    def test_has_many_single_query(self, people, book, sqlite_ctx, statements):
        statements.clear()
        users = load(book, sqlite_ctx, User, "emails")
        assert len(selects(statements)) == 2
        assert [[e.email for e in u.emails] for u in users] == [
            ["a1@example.com", "a2@example.com"],
            ["b@example.com"],
            [],
            [],
        ]

    def test_many_to_many(self, people, book, sqlite_ctx, statements):
        statements.clear()
        users = load(book, sqlite_ctx, User, "languages")
        assert len(selects(statements)) == 2
        names = [sorted(lang.name for lang in u.languages) for u in users]
        assert names == [["de", "en"], ["de"], [], []]
        alice_de = next(lang for lang in users[0].languages if lang.name == "de")
        bob_de = users[1].languages[0]
        assert alice_de.id == bob_de.id == 2

    def test_polymorphic_filters_owner_type(self, people, book, sqlite_ctx):
        users = load(book, sqlite_ctx, User, "toys")
        assert [[t.name for t in u.toys] for u in users] == [["car"], ["doll"], [], []]


class TestToOne:
    def test_belongs_to(self, people, book, sqlite_ctx, statements):
        statements.clear()
        users = load(book, sqlite_ctx, User, "company")
        assert len(selects(statements)) == 2
        assert [u.company.name if u.company else None for u in users] == [
            "acme",
            "globex",
            "acme",
            None,
        ]
        assert users[0].company is users[2].company

    def test_has_one(self, people, book, sqlite_ctx):
        users = load(book, sqlite_ctx, User, "profile")
        assert [u.profile.bio if u.profile else None for u in users] == ["a", None, "c", None]

    def test_no_keys_skips_query(self, conn, book, sqlite_ctx, statements):
        conn.execute("INSERT INTO users (id, name) VALUES (1, 'solo')")
        statements.clear()
        users = load(book, sqlite_ctx, User, "company")
        assert len(selects(statements)) == 1
        assert users[0].company is None


class TestNestedPaths:
    def test_nested_segments(self, people, book, sqlite_ctx, statements):
        statements.clear()
        posts = load(book, sqlite_ctx, Post, "user.profile")
        assert len(selects(statements)) == 3
        assert [p.user.name for p in posts] == ["alice", "bob", "alice"]
        assert posts[0].user.profile.bio == "a"
        assert posts[1].user.profile is None

    def test_shared_prefix_loaded_once(self, people, book, sqlite_ctx, statements):
        statements.clear()
        load(book, sqlite_ctx, Post, "user", "user.emails")
        assert len(selects(statements)) == 3

    def test_conditions_apply_to_last_segment(self, people, book, sqlite_ctx):
        posts = load(book, sqlite_ctx, Post, ("user.emails", "email LIKE ?", "a2%"))
        assert [p.user.name for p in posts] == ["alice", "bob", "alice"]
        assert [e.email for e in posts[0].user.emails] == ["a2@example.com"]
        assert posts[1].user.emails == []

    def test_empty_first_segment_skips_rest(self, conn, book, sqlite_ctx, statements):
        conn.execute("INSERT INTO posts (id, title, user_id) VALUES (1, 'orphan', NULL)")
        statements.clear()
        posts = load(book, sqlite_ctx, Post, "user.emails")
        assert len(selects(statements)) == 1
        assert posts[0].user is None

    def test_preloaded_records_see_after_find(self, people, book, sqlite_ctx):
        posts = load(book, sqlite_ctx, Post, "user")
        assert posts[0].user.calls == ["after_find"]


class TestErrors:
    def test_unknown_segment(self, people, book, sqlite_ctx):
        with pytest.raises(PreloadPathError) as exc_info:
            load(book, sqlite_ctx, Post, "user.nope")
        assert exc_info.value.segment == "nope"
        assert exc_info.value.model == "User"

    def test_normal_column_is_not_a_path(self, people, book, sqlite_ctx):
        with pytest.raises(PreloadPathError):
            load(book, sqlite_ctx, User, "name")

    def test_unsupported_kind(self, sqlite_ctx, book):
        struct = SimpleNamespace(relationship=SimpleNamespace(kind="embedded"))
        ctx = sqlite_ctx([], model=get_model_struct(User))
        with pytest.raises(UnsupportedRelationError):
            preload_field(book, ctx, struct, ())


class TestInCondition:
    def test_single_column(self, recording_ctx):
        ctx = recording_ctx([], model=get_model_struct(User))
        assert in_condition(ctx, ["user_id"], [(1,), (2,)]) == ('"user_id" IN (?,?)', [1, 2])

    def test_composite_key(self, recording_ctx):
        ctx = recording_ctx([], model=get_model_struct(User))
        sql, values = in_condition(ctx, ["a", "b"], [(1, "x"), (2, "y")])
        assert sql == '("a","b") IN ((?,?),(?,?))'
        assert values == [1, "x", 2, "y"]


class TestJoinProjection:
    def test_aliases_join_key(self, sqlite):
        rel = get_model_struct(User).field("languages").relationship
        projection = join_projection(rel, sqlite)
        assert projection.key_aliases == ("user_languages__user_id",)
        assert '"user_languages"."user_id" AS "user_languages__user_id"' in projection.columns
        assert projection.join_clause == (
            'INNER JOIN "user_languages" ON "user_languages"."language_id" = "languages"."id"'
        )
