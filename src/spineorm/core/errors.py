"""
Structured error types for spine-orm.

Every failure the engine can surface is an ``ORMError`` subclass carrying a
category, structured context (operation, step, model, table, SQL) and the
chained driver exception when one exists. Callers branch on the type;
logging uses ``to_dict()``.

Manifesto:
    - **Typed taxonomy:** usage, not-found, database and addressability
      failures are distinct types, never a bare ``Exception``
    - **Verbatim surfacing:** the engine never retries; errors reach the
      caller with the original driver exception chained as ``__cause__``
    - **Rich context:** SQL text and pipeline position travel with the error

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                          ORMError                             │
        │            (category, context, cause)                         │
        ├───────────────────────────────────────────────────────────────┤
        │  UsageError              RecordNotFoundError                  │
        │  (USAGE)                 (NOT_FOUND)                          │
        │     │                                                         │
        │  UnsupportedDestination  DatabaseError       Unaddressable    │
        │  MissingCondition        (DATABASE)          (ADDRESSABILITY) │
        │  UnsupportedRelation        │                                 │
        │  PreloadPath             QueryError          HookNotImpl.     │
        │  ModelDefinition         TransactionError    (PIPELINE)       │
        │                            RollbackError                      │
        │                                               ConfigError     │
        └───────────────────────────────────────────────────────────────┘

Examples:
    >>> err = MissingConditionError("missing WHERE condition for update")
    >>> err.category
    <ErrorCategory.USAGE: 'USAGE'>
    >>> err.with_context(operation="update", model="User").context.model
    'User'

Guardrails:
    ❌ DON'T: Raise plain Exception from a pipeline step
    ✅ DO: Raise the most specific ORMError subclass

    ❌ DON'T: Hide the driver exception when wrapping it
    ✅ DO: Pass it as cause= so it is chained

Tags:
    error-handling, exception-hierarchy, error-context, spine-orm

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories used for classification and log routing.

    Attributes:
        USAGE: Caller mistakes - bad destination, missing WHERE, bad preload path
        NOT_FOUND: Zero rows for a singular destination
        DATABASE: Statement, commit or rollback failure in the backend
        ADDRESSABILITY: A generated value cannot be written back into a record
        PIPELINE: Hook registry misconfiguration
        CONFIG: Invalid settings or unknown dialect
        INTERNAL: Unexpected state
    """

    USAGE = "USAGE"
    NOT_FOUND = "NOT_FOUND"
    DATABASE = "DATABASE"
    ADDRESSABILITY = "ADDRESSABILITY"
    PIPELINE = "PIPELINE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set show up in ``to_dict()``; anything without a
    dedicated slot goes into ``metadata``.

    Attributes:
        operation: CRUD group that was running (create, query, ...)
        step: Step name inside the group
        model: Record type name
        table: Table name
        sql: Statement text at the time of failure
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    step: str | None = None
    model: str | None = None
    table: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "step", "model", "table", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ORMError(Exception):
    """
    Base exception for all spine-orm errors.

    Subclasses set ``default_category``; instances carry an
    :class:`ErrorContext` and an optional chained ``cause``.

    Examples:
        >>> error = ORMError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'ORMError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ORMError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("insert failed", cause=exc).with_context(
                operation="create", sql=ctx.sql
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# USAGE ERRORS (never retried, surfaced verbatim)
# =============================================================================


class UsageError(ORMError):
    """The caller asked for something the engine cannot do."""

    default_category = ErrorCategory.USAGE


class UnsupportedDestinationError(UsageError):
    """Query destination is neither a model instance nor a list."""

    def __init__(self, destination: Any):
        self.destination_type = type(destination).__name__
        super().__init__(
            f"unsupported destination {self.destination_type}, should be list or model instance"
        )


class MissingConditionError(UsageError):
    """UPDATE or DELETE without any WHERE condition."""

    pass


class UnsupportedRelationError(UsageError):
    """Relationship kind the preloader does not know how to resolve."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"can't preload {kind}: unsupported relation")


class PreloadPathError(UsageError):
    """A preload path segment matches no relationship field on the model."""

    def __init__(self, path: str, segment: str, model: str):
        self.path = path
        self.segment = segment
        self.model = model
        super().__init__(f"can't preload field {segment} of {path!r} for {model}")


class ModelDefinitionError(UsageError):
    """A record type cannot be turned into metadata."""

    pass


# =============================================================================
# NOT FOUND
# =============================================================================


class RecordNotFoundError(ORMError):
    """Zero rows were scanned into a singular destination."""

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str = "record not found", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(ORMError):
    """Backend statement, commit or rollback failure."""

    default_category = ErrorCategory.DATABASE


class QueryError(DatabaseError):
    """A statement failed to execute."""

    pass


class TransactionError(DatabaseError):
    """Begin or commit failed."""

    pass


class RollbackError(TransactionError):
    """Rollback failed after another failure; the original is kept in context."""

    pass


# =============================================================================
# OTHER
# =============================================================================


class UnaddressableError(ORMError):
    """A generated key cannot be written back into the record."""

    default_category = ErrorCategory.ADDRESSABILITY

    def __init__(self, message: str = "using unaddressable value", **kwargs: Any):
        super().__init__(message, **kwargs)


class HookNotImplementedError(ORMError):
    """A required step has no registered implementation."""

    default_category = ErrorCategory.PIPELINE

    def __init__(self, group: str, step: str):
        self.group = group
        self.step = step
        super().__init__(f"hook {group}:{step} is not implemented")


class ConfigError(ORMError):
    """Invalid configuration (unknown dialect, bad URL)."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ORMError",
    "UsageError",
    "UnsupportedDestinationError",
    "MissingConditionError",
    "UnsupportedRelationError",
    "PreloadPathError",
    "ModelDefinitionError",
    "RecordNotFoundError",
    "DatabaseError",
    "QueryError",
    "TransactionError",
    "RollbackError",
    "UnaddressableError",
    "HookNotImplementedError",
    "ConfigError",
]
