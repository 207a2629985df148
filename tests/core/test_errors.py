"""Tests for spineorm.core.errors module."""

import pytest

from spineorm.core.errors import (
    ConfigError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    HookNotImplementedError,
    MissingConditionError,
    ORMError,
    PreloadPathError,
    QueryError,
    RecordNotFoundError,
    RollbackError,
    TransactionError,
    UnaddressableError,
    UnsupportedDestinationError,
    UnsupportedRelationError,
    UsageError,
)


class TestErrorContext:
    def test_empty_context(self):
        assert ErrorContext().to_dict() == {}

    def test_to_dict_includes_set_fields_and_metadata(self):
        ctx = ErrorContext(operation="create", table="users", metadata={"rows": 2})
        assert ctx.to_dict() == {"operation": "create", "table": "users", "rows": 2}


class TestORMError:
    def test_default_category(self):
        assert ORMError("boom").category is ErrorCategory.INTERNAL

    def test_with_context_routes_unknown_keys_to_metadata(self):
        err = ORMError("boom").with_context(sql="SELECT 1", attempt=3)
        assert err.context.sql == "SELECT 1"
        assert err.context.metadata == {"attempt": 3}

    def test_cause_is_chained(self):
        cause = ValueError("driver")
        err = QueryError("failed", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "driver"

    def test_to_dict(self):
        err = RecordNotFoundError().with_context(table="users")
        data = err.to_dict()
        assert data["error_type"] == "RecordNotFoundError"
        assert data["category"] == "NOT_FOUND"
        assert data["context"] == {"table": "users"}


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            UnsupportedDestinationError,
            MissingConditionError,
            UnsupportedRelationError,
            PreloadPathError,
        ],
    )
    def test_usage_errors(self, cls):
        assert issubclass(cls, UsageError)

    def test_database_errors(self):
        assert issubclass(RollbackError, TransactionError)
        assert issubclass(TransactionError, DatabaseError)
        assert issubclass(QueryError, DatabaseError)

    def test_categories(self):
        assert UnaddressableError().category is ErrorCategory.ADDRESSABILITY
        assert HookNotImplementedError("create", "create").category is ErrorCategory.PIPELINE
        assert ConfigError("bad").category is ErrorCategory.CONFIG


class TestMessages:
    def test_unsupported_destination_names_type(self):
        err = UnsupportedDestinationError(42)
        assert err.destination_type == "int"
        assert "int" in str(err)

    def test_preload_path_error_names_path_and_model(self):
        err = PreloadPathError("emails.owner", "owner", "Email")
        assert "emails.owner" in str(err)
        assert "Email" in str(err)
        assert err.segment == "owner"

    def test_hook_not_implemented(self):
        err = HookNotImplementedError("query", "query_sql")
        assert str(err) == "hook query:query_sql is not implemented"
