"""QL-family (``ql``, ``ql-mem``) fix-up after create.

QL has no auto-increment column; a row is identified by the ``id()``
function. After an INSERT the engine re-issues the record's values as an
UPDATE whose trailing ``WHERE id = $N`` is rewritten to ``WHERE id()= $N``.

The rewrite is plain text surgery:

    - find the last ``"WHERE"``; none → no-op
    - find the last ``" id = "``; none, or before that WHERE → no-op
    - replace it with ``" id()= "``
    - the ``$N`` that follows names parameter ``N - 1``; an integer at or
      above ``2**63`` is reinterpreted as signed 64-bit
"""

from __future__ import annotations

import re

from spineorm.core.errors import UsageError
from spineorm.engine.context import OperationContext
from spineorm.engine.scope import fields, has_conditions
from spineorm.hooks.book import Book, Group, Step

_ID = " id = "
_ID_FN = " id()= "
_WHERE = "WHERE"
_PARAM = re.compile(r"\$(\d+)")

_INT64_LIMIT = 2**63


def fix_where(ctx: OperationContext) -> None:
    src = ctx.sql
    last_where = src.rfind(_WHERE)
    if last_where == -1:
        return
    last_id = src.rfind(_ID)
    if last_id == -1 or last_id < last_where:
        return

    ctx.sql = src[:last_id] + _ID_FN + src[last_id + len(_ID):]

    match = _PARAM.match(src, last_id + len(_ID))
    if match is None:
        raise UsageError(f"expected a $N parameter after id in {src!r}")
    index = int(match.group(1)) - 1
    value = ctx.sql_vars[index]
    if isinstance(value, int) and not isinstance(value, bool) and value >= _INT64_LIMIT:
        ctx.sql_vars[index] = value - 2 * _INT64_LIMIT


def ql_after_create(book: Book, ctx: OperationContext) -> None:
    """Write the record's values back, keyed on the QL row identity."""
    attrs = {f.db_name: f.value for f in fields(ctx) if f.is_normal and not f.is_primary_key}
    if not attrs:
        return

    sub = ctx.clone(ctx.value, model=ctx.model)
    if not has_conditions(sub):
        return
    sub.options.ignore_protected_attrs = True
    sub.options.update_interface = attrs

    book.must_exec(Group.UPDATE, Step.UPDATE_SQL, sub)
    fix_where(sub)
    book.must_exec(Group.UPDATE, Step.UPDATE_EXEC, sub)


__all__ = ["fix_where", "ql_after_create"]
