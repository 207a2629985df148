"""Record lifecycle methods.

A record type opts into a callback by defining a method of the matching
name; it is called with the operation context for every record the
operation touches. Raising from the method stops the pipeline.

    ==================  =========================
    step                record method
    ==================  =========================
    HOOK_BEFORE_SAVE    ``before_save(ctx)``
    HOOK_AFTER_SAVE     ``after_save(ctx)``
    HOOK_BEFORE_CREATE  ``before_create(ctx)``
    HOOK_AFTER_CREATE   ``after_create(ctx)``
    HOOK_BEFORE_UPDATE  ``before_update(ctx)``
    HOOK_AFTER_UPDATE   ``after_update(ctx)``
    HOOK_BEFORE_DELETE  ``before_delete(ctx)``
    HOOK_AFTER_DELETE   ``after_delete(ctx)``
    HOOK_AFTER_FIND     ``after_find(ctx)``
    ==================  =========================
"""

from __future__ import annotations

from spineorm.engine.context import OperationContext
from spineorm.hooks.book import Book, Group, Step, StepFn

METHODS: dict[tuple[Group, Step], str] = {
    (Group.SAVE, Step.HOOK_BEFORE_SAVE): "before_save",
    (Group.SAVE, Step.HOOK_AFTER_SAVE): "after_save",
    (Group.CREATE, Step.HOOK_BEFORE_CREATE): "before_create",
    (Group.CREATE, Step.HOOK_AFTER_CREATE): "after_create",
    (Group.UPDATE, Step.HOOK_BEFORE_UPDATE): "before_update",
    (Group.UPDATE, Step.HOOK_AFTER_UPDATE): "after_update",
    (Group.DELETE, Step.HOOK_BEFORE_DELETE): "before_delete",
    (Group.DELETE, Step.HOOK_AFTER_DELETE): "after_delete",
    (Group.QUERY, Step.HOOK_AFTER_FIND): "after_find",
}


def call_method(name: str) -> StepFn:
    """A step that calls ``record.<name>(ctx)`` on each record that defines it."""

    def step(book: Book, ctx: OperationContext) -> None:
        for record in ctx.records():
            method = getattr(record, name, None)
            if callable(method):
                method(ctx)

    step.__name__ = f"call_{name}"
    return step


def register_lifecycle(book: Book) -> Book:
    for (group, step), name in METHODS.items():
        book.register(group, step, call_method(name))
    return book


__all__ = ["METHODS", "call_method", "register_lifecycle"]
