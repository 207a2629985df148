"""Record declarations and cached record metadata."""

from spineorm.model.fields import (
    RelationKind,
    belongs_to,
    column,
    has_many,
    has_one,
    ignore,
    many_to_many,
)
from spineorm.model.struct import (
    ForeignKey,
    JoinTable,
    ModelStruct,
    Relationship,
    StructField,
    clear_model_cache,
    get_model_struct,
    is_record,
)

__all__ = [
    "RelationKind",
    "belongs_to",
    "column",
    "has_many",
    "has_one",
    "ignore",
    "many_to_many",
    "ForeignKey",
    "JoinTable",
    "ModelStruct",
    "Relationship",
    "StructField",
    "clear_model_cache",
    "get_model_struct",
    "is_record",
]
