"""The built-in step registrations."""

from __future__ import annotations

from spineorm.hooks import associations, create, delete, query, update
from spineorm.hooks.book import Book, Group, Step
from spineorm.hooks.lifecycle import register_lifecycle


def default_book() -> Book:
    """A Book with every built-in step registered.

    Callers may append their own functions to any step of the returned
    Book; it is a new instance on every call.
    """
    book = Book()

    book.register(Group.CREATE, Step.CREATE, create.create)
    book.register(Group.CREATE, Step.BEFORE_CREATE, create.before_create)
    book.register(Group.CREATE, Step.SAVE_BEFORE_ASSOCIATIONS, associations.save_before_associations)
    book.register(Group.CREATE, Step.UPDATE_TIMESTAMP, create.update_timestamp)
    book.register(Group.CREATE, Step.CREATE_SQL, create.create_sql)
    book.register(Group.CREATE, Step.CREATE_EXEC, create.create_exec)
    book.register(Group.CREATE, Step.AFTER_CREATE, create.after_create)
    book.register(Group.CREATE, Step.RELOAD_DEFAULTS, create.reload_defaults)

    book.register(Group.QUERY, Step.QUERY, query.query)
    book.register(Group.QUERY, Step.QUERY_SQL, query.query_sql)
    book.register(Group.QUERY, Step.QUERY_EXEC, query.query_exec)
    book.register(Group.QUERY, Step.AFTER_QUERY, query.after_query)

    book.register(Group.UPDATE, Step.UPDATE, update.update)
    book.register(Group.UPDATE, Step.BEFORE_UPDATE, update.before_update)
    book.register(Group.UPDATE, Step.UPDATE_TIMESTAMP, update.update_timestamp)
    book.register(Group.UPDATE, Step.ASSIGN_UPDATING_ATTRS, update.assign_updating_attrs)
    book.register(Group.UPDATE, Step.SAVE_BEFORE_ASSOCIATIONS, associations.save_before_associations)
    book.register(Group.UPDATE, Step.UPDATE_SQL, update.update_sql)
    book.register(Group.UPDATE, Step.UPDATE_EXEC, update.update_exec)
    book.register(Group.UPDATE, Step.AFTER_UPDATE, update.after_update)
    book.register(Group.UPDATE, Step.SAVE_AFTER_ASSOCIATIONS, associations.save_after_associations)

    book.register(Group.DELETE, Step.DELETE, delete.delete)
    book.register(Group.DELETE, Step.BEFORE_DELETE, delete.before_delete)
    book.register(Group.DELETE, Step.DELETE_SQL, delete.delete_sql)
    book.register(Group.DELETE, Step.AFTER_DELETE, delete.after_delete)

    return register_lifecycle(book)


__all__ = ["default_book"]
