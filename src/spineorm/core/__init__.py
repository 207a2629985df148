"""Spine ORM Core -- platform primitives the pipeline is built on.

Manifesto:
    The hook pipeline never talks to a driver, an env var or a print
    statement directly. Everything below it (SQL dialects, connections,
    transactions, errors, logging, settings) lives here as small,
    protocol-first modules so steps stay about records and SQL.

    - **Protocol-first:** Connection, Cursor and Dialect are protocols
    - **Import-guarded extras:** SQLAlchemy is loaded lazily by backends
    - **Typed failures:** every error is an ``ORMError`` subclass

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (ORMError, UsageError)
        protocols.py       Connection / Cursor protocols

    Layer 2 -- Database
        dialect.py         SQL dialect abstraction (sqlite, postgresql, mysql, ql)
        connection.py      Connection factory (create_connection)
        transaction.py     Explicit transactions + statement execution

    Layer 3 -- Ambient
        logging.py         structlog configuration
        settings.py        ORMSettings (pydantic-settings)

Tags:
    spine-orm, core, dialect, errors, transaction

Doc-Types:
    package-overview
"""

from spineorm.core.connection import ConnectionInfo, create_connection
from spineorm.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    QLDialect,
    SQLiteDialect,
    get_dialect,
    is_ql,
    register_dialect,
)
from spineorm.core.errors import (
    ConfigError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    HookNotImplementedError,
    MissingConditionError,
    ModelDefinitionError,
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
from spineorm.core.logging import configure_logging, get_logger
from spineorm.core.protocols import Connection, Cursor
from spineorm.core.settings import ORMSettings
from spineorm.core.transaction import transaction

__all__ = [
    # connection
    "ConnectionInfo",
    "create_connection",
    # dialect
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "QLDialect",
    "SQLiteDialect",
    "get_dialect",
    "is_ql",
    "register_dialect",
    # errors
    "ConfigError",
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "HookNotImplementedError",
    "MissingConditionError",
    "ModelDefinitionError",
    "ORMError",
    "PreloadPathError",
    "QueryError",
    "RecordNotFoundError",
    "RollbackError",
    "TransactionError",
    "UnaddressableError",
    "UnsupportedDestinationError",
    "UnsupportedRelationError",
    "UsageError",
    # ambient
    "configure_logging",
    "get_logger",
    "ORMSettings",
    # protocols
    "Connection",
    "Cursor",
    "transaction",
]
