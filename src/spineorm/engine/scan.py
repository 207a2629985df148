"""Row → record scanning with light type coercion.

Columns are matched to fields by column name; unknown columns are ignored.
Values are coerced only where the backend's wire type cannot match the
declared type directly (SQLite hands back ISO text for timestamps and
integers for booleans).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from spineorm.core.errors import ModelDefinitionError
from spineorm.engine.scope import Field
from spineorm.model.struct import ModelStruct


def column_names(description: Sequence[Sequence[Any]] | None) -> list[str]:
    if not description:
        return []
    return [str(col[0]) for col in description]


def coerce(value: Any, python_type: Any) -> Any:
    if value is None or python_type is None or isinstance(value, python_type):
        if python_type is date and isinstance(value, datetime):
            return value.date()
        return value
    if python_type is datetime and isinstance(value, str):
        return datetime.fromisoformat(value)
    if python_type is date and isinstance(value, str):
        return date.fromisoformat(value[:10])
    if python_type is bool and isinstance(value, int | float):
        return bool(value)
    if python_type is int and isinstance(value, bool | float | str):
        return int(value)
    if python_type is float and isinstance(value, int | str):
        return float(value)
    if python_type is str and isinstance(value, bytes):
        return value.decode()
    return value


def scan_row(columns: Sequence[str], row: Sequence[Any], targets: Mapping[str, Field]) -> None:
    """Write ``row`` into the fields named by ``columns``."""
    for name, value in zip(columns, row):
        field = targets.get(name)
        if field is None:
            continue
        field.set(coerce(value, field.python_type))


def new_record(model: ModelStruct) -> Any:
    """A blank instance of the record type, ready to be scanned into."""
    try:
        return model.model_type()
    except TypeError as exc:
        raise ModelDefinitionError(
            f"{model.model_type.__name__} must be constructible without arguments "
            "to be used as a query result",
            cause=exc,
        ) from exc


def targets_for(fields: Sequence[Field]) -> dict[str, Field]:
    """Column name → field, for the normal fields of one record."""
    return {f.db_name: f for f in fields if f.is_normal}


__all__ = ["coerce", "column_names", "new_record", "scan_row", "targets_for"]
