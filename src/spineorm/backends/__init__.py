"""Backend connection adapters.

Modules
-------
sqlite      SqliteConnection (stdlib sqlite3, always available)
sqlalchemy  SAConnectionBridge + create_orm_engine (optional extra)
"""

from spineorm.backends.sqlite import SqliteConnection

__all__ = ["SqliteConnection"]
