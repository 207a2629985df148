"""Operation context, field handles, SQL builder and row scanning."""

from spineorm.engine.context import OperationContext, Options, PreloadSpec, Search
from spineorm.engine.scope import Field, is_blank

__all__ = ["OperationContext", "Options", "PreloadSpec", "Search", "Field", "is_blank"]
