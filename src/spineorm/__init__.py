"""
spine-orm - hook-pipeline ORM with batched association preloading.

Every CRUD operation is an ordered sequence of named steps held in a
``Book``; records are plain dataclasses whose relationships are declared
with ``belongs_to``/``has_one``/``has_many``/``many_to_many``.
"""

__version__ = "0.1.0"

from spineorm.core.errors import (
    ConfigError,
    DatabaseError,
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
from spineorm.core.settings import ORMSettings
from spineorm.db import DB
from spineorm.engine.context import OperationContext, Options, Search
from spineorm.hooks import Book, Group, Step, default_book
from spineorm.model import (
    belongs_to,
    column,
    get_model_struct,
    has_many,
    has_one,
    ignore,
    many_to_many,
)

__all__ = [
    "__version__",
    # entry
    "DB",
    "ORMSettings",
    # pipeline
    "Book",
    "Group",
    "Step",
    "default_book",
    "OperationContext",
    "Options",
    "Search",
    # model
    "belongs_to",
    "column",
    "get_model_struct",
    "has_many",
    "has_one",
    "ignore",
    "many_to_many",
    # errors
    "ConfigError",
    "DatabaseError",
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
]
