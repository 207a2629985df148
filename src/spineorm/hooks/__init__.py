"""
Hook pipeline: the Book registry and the built-in CRUD steps.

Steps are plain functions ``fn(book, ctx)`` registered under a
``(Group, Step)`` pair. ``default_book()`` wires every built-in step;
append your own to extend a step without replacing it.
"""

from spineorm.hooks.book import Book, Group, Step, StepFn
from spineorm.hooks.defaults import default_book
from spineorm.hooks.preload import preload

__all__ = [
    "Book",
    "Group",
    "Step",
    "StepFn",
    "default_book",
    "preload",
]
