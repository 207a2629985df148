"""Tests for field handles and scope helpers."""

from datetime import date, datetime

import pytest

from spineorm.core.errors import UnaddressableError
from spineorm.engine.context import Options
from spineorm.engine.scan import coerce, scan_row, targets_for
from spineorm.engine.scope import (
    Field,
    changeable_field,
    column_as_array,
    field_by_name,
    fields,
    has_conditions,
    is_blank,
    key_string,
    set_column,
    updated_attrs_with_values,
)
from spineorm.model import get_model_struct
from tests._support.models import Email, Gadget, User


class TestIsBlank:
    @pytest.mark.parametrize("value", [None, 0, "", False, [], {}, 0.0])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [1, "x", True, [0], User(), datetime(2024, 1, 1)])
    def test_not_blank(self, value):
        assert not is_blank(value)


class TestField:
    def test_value_and_set(self):
        user = User(name="a")
        field = Field(get_model_struct(User).field("name"), user)
        assert field.value == "a"
        field.set("b")
        assert user.name == "b"
        assert field.db_name == "name"

    def test_set_on_type_is_noop(self):
        field = Field(get_model_struct(User).field("name"), User)
        field.set("ignored")
        assert field.value is None

    def test_frozen_record_is_unaddressable(self):
        field = Field(get_model_struct(Gadget).field("id"), Gadget())
        with pytest.raises(UnaddressableError):
            field.set(1)


class TestChangeable:
    def test_selects_and_omits(self, recording_ctx):
        ctx = recording_ctx(User())
        name = field_by_name(ctx, "name")
        age = field_by_name(ctx, "age")
        ctx.search.selects = ["name"]
        assert changeable_field(ctx, name)
        assert not changeable_field(ctx, age)
        ctx.search.selects = []
        ctx.search.omits = ["age"]
        assert not changeable_field(ctx, age)


class TestSetColumn:
    def test_writes_record_and_pending_attrs(self, recording_ctx):
        user = User()
        ctx = recording_ctx(user, options=Options(update_interface={}, update_attrs={}))
        assert set_column(ctx, "updated_at", "now")
        assert user.updated_at == "now"
        assert ctx.options.update_interface == {"updated_at": "now"}
        assert ctx.options.update_attrs == {"updated_at": "now"}

    def test_unknown_column(self, recording_ctx):
        assert set_column(recording_ctx(User()), "nope", 1) is False


class TestUpdatedAttrs:
    def test_translation(self, recording_ctx):
        user = User(id=1)
        ctx = recording_ctx(user)
        attrs = updated_attrs_with_values(
            ctx, {"name": "x", "id": 99, "calls": ["c"], "legacy_flag": 1}
        )
        assert attrs == {"name": "x", "legacy_flag": 1}
        assert user.name == "x"
        assert user.id == 1

    def test_protected_attrs_ignored(self, recording_ctx):
        user = User(id=1)
        ctx = recording_ctx(user, options=Options(ignore_protected_attrs=True))
        assert updated_attrs_with_values(ctx, {"id": 5}) == {"id": 5}
        assert user.id == 5


class TestConditions:
    def test_has_conditions(self, recording_ctx):
        assert has_conditions(recording_ctx(User(id=1)))
        assert not has_conditions(recording_ctx(User()))
        assert not has_conditions(recording_ctx(User))
        ctx = recording_ctx(User)
        ctx.search.where("1 = 1")
        assert has_conditions(ctx)


class TestKeys:
    def test_column_as_array_dedupes_and_skips_blank(self):
        emails = [Email(user_id=1), Email(user_id=None), Email(user_id=1), Email(user_id=2)]
        assert column_as_array(["user_id"], emails) == [(1,), (2,)]

    def test_key_string_equates_int_and_str(self):
        assert key_string((1,)) == key_string(("1",))
        assert key_string((1, "a")) == "1\x1fa"

    def test_key_string_composite_parts_stay_apart(self):
        assert key_string(("1_2", "3")) != key_string(("1", "2_3"))


class TestScan:
    @pytest.mark.parametrize(
        "value,target,expected",
        [
            ("2024-05-01 10:30:00", datetime, datetime(2024, 5, 1, 10, 30)),
            ("2024-05-01", date, date(2024, 5, 1)),
            (1, bool, True),
            ("7", int, 7),
            (b"abc", str, "abc"),
            (None, int, None),
            (datetime(2024, 5, 1, 9), date, date(2024, 5, 1)),
        ],
    )
    def test_coerce(self, value, target, expected):
        assert coerce(value, target) == expected

    def test_scan_row_ignores_unknown_columns(self, recording_ctx):
        user = User()
        ctx = recording_ctx(user)
        scan_row(["id", "name", "extra"], (4, "z", "?"), targets_for(fields(ctx)))
        assert (user.id, user.name) == (4, "z")
