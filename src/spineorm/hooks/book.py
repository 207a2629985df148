"""The Book: an ordered registry of pipeline steps.

Manifesto:
    Every CRUD operation is a fixed sequence of named steps. The Book maps
    each ``(Group, Step)`` pair to an ordered list of functions, so the
    built-in behaviour can be extended by appending without overriding
    anything.

    - **Append-only:** ``register`` adds; every registered function runs
    - **Ordered:** registration order is execution order
    - **Fail-fast:** the first exception stops the chain and propagates

Two invocation modes::

    book.must_exec(group, step, ctx)   # nothing registered → HookNotImplementedError
    book.exec(group, step, ctx)        # nothing registered → no-op

A step is ``fn(book, ctx) -> None``; it fails by raising.

Examples:
    >>> book = Book()
    >>> book.register(Group.QUERY, Step.HOOK_AFTER_FIND, lambda b, ctx: None)
    >>> len(book.steps(Group.QUERY, Step.HOOK_AFTER_FIND))
    1

Tags:
    spine-orm, hooks, registry, pipeline

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from spineorm.core.errors import HookNotImplementedError
from spineorm.core.logging import get_logger

if TYPE_CHECKING:
    from spineorm.engine.context import OperationContext

logger = get_logger(__name__)


class Group(str, Enum):
    CREATE = "create"
    QUERY = "query"
    UPDATE = "update"
    DELETE = "delete"
    SAVE = "save"


class Step(str, Enum):
    # drivers
    CREATE = "create"
    QUERY = "query"
    UPDATE = "update"
    DELETE = "delete"

    # create
    BEFORE_CREATE = "before_create"
    CREATE_SQL = "create_sql"
    CREATE_EXEC = "create_exec"
    AFTER_CREATE = "after_create"
    RELOAD_DEFAULTS = "reload_defaults"

    # query
    QUERY_SQL = "query_sql"
    QUERY_EXEC = "query_exec"
    AFTER_QUERY = "after_query"

    # update
    BEFORE_UPDATE = "before_update"
    UPDATE_SQL = "update_sql"
    UPDATE_EXEC = "update_exec"
    AFTER_UPDATE = "after_update"
    ASSIGN_UPDATING_ATTRS = "assign_updating_attrs"

    # delete
    BEFORE_DELETE = "before_delete"
    DELETE_SQL = "delete_sql"
    AFTER_DELETE = "after_delete"

    # shared
    UPDATE_TIMESTAMP = "update_timestamp"
    SAVE_BEFORE_ASSOCIATIONS = "save_before_associations"
    SAVE_AFTER_ASSOCIATIONS = "save_after_associations"

    # record lifecycle methods
    HOOK_BEFORE_SAVE = "before_save"
    HOOK_AFTER_SAVE = "after_save"
    HOOK_BEFORE_CREATE = "before_create_hook"
    HOOK_AFTER_CREATE = "after_create_hook"
    HOOK_BEFORE_UPDATE = "before_update_hook"
    HOOK_AFTER_UPDATE = "after_update_hook"
    HOOK_BEFORE_DELETE = "before_delete_hook"
    HOOK_AFTER_DELETE = "after_delete_hook"
    HOOK_AFTER_FIND = "after_find"


StepFn = Callable[["Book", "OperationContext"], None]


class Book:
    """Ordered ``(Group, Step)`` → functions registry."""

    def __init__(self) -> None:
        self._steps: dict[tuple[Group, Step], list[StepFn]] = {}

    def register(self, group: Group, step: Step, fn: StepFn) -> None:
        self._steps.setdefault((group, step), []).append(fn)

    def steps(self, group: Group, step: Step) -> tuple[StepFn, ...]:
        return tuple(self._steps.get((group, step), ()))

    def must_exec(self, group: Group, step: Step, ctx: OperationContext) -> None:
        """Run every function for the step; an empty step is an error."""
        fns = self._steps.get((group, step))
        if not fns:
            raise HookNotImplementedError(group.value, step.value)
        self._run(group, step, fns, ctx)

    def exec(self, group: Group, step: Step, ctx: OperationContext) -> None:
        """Run every function for the step; an empty step is a no-op."""
        fns = self._steps.get((group, step))
        if fns:
            self._run(group, step, fns, ctx)

    def _run(self, group: Group, step: Step, fns: list[StepFn], ctx: OperationContext) -> None:
        logger.debug("hook_exec", group=group.value, step=step.value, count=len(fns))
        for fn in tuple(fns):
            fn(self, ctx)

    def __repr__(self) -> str:
        return f"Book(steps={len(self._steps)})"


__all__ = ["Book", "Group", "Step", "StepFn"]
