"""Connection factory: create database connections from URL strings.

``DB.open()`` goes through ``create_connection()`` rather than importing
backend-specific classes directly.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/my.db`` or ``/tmp/orm.db``          SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
``mysql``           ``mysql+pymysql://user:pw@host/db``          MySQL
==================  ==========================================  ============

Server backends go through the SQLAlchemy bridge and need the
``sqlalchemy`` extra.

Usage
-----
::

    from spineorm.core.connection import create_connection

    conn, info = create_connection()
    conn, info = create_connection("sqlite:///app.db")

    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/app.db')

``ConnectionInfo.backend`` doubles as the dialect name handed to
``get_dialect()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spineorm.core.errors import ConfigError
from spineorm.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from spineorm.backends.sqlite import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from spineorm.backends.sqlite import SqliteConnection

    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


def _create_server(backend: str, url: str) -> tuple[Any, ConnectionInfo]:
    """Create a server connection via the SQLAlchemy bridge."""
    try:
        from sqlalchemy.orm import Session

        from spineorm.backends.sqlalchemy import SAConnectionBridge, create_orm_engine
    except ImportError as exc:
        raise ConfigError(
            f"{backend} URLs need SQLAlchemy. Install spine-orm[sqlalchemy].",
            cause=exc,
        ) from exc

    engine = create_orm_engine(url)
    conn = SAConnectionBridge(Session(bind=engine))
    logger.debug("server_connection_created", backend=backend)
    return conn, ConnectionInfo(backend=backend, persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``,
    ``"mysql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if db.startswith(("postgresql", "postgres")) and "://" in db:
        return "postgresql", db

    if db.startswith("mysql") and "://" in db:
        return "mysql", db

    if "://" in db:
        raise ConfigError(f"unsupported database URL scheme: {db.split('://', 1)[0]!r}")

    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    data_dir: str | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, a file path or
        ``sqlite:///`` URL, or a PostgreSQL/MySQL URL.
    data_dir:
        For SQLite paths, resolve relative paths within this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]

    Raises
    ------
    ConfigError
        Unknown URL scheme, or a server URL without SQLAlchemy installed.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        return _create_sqlite_memory()

    if scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir) / target)
        return _create_sqlite_file(target)

    return _create_server(scheme, target)


__all__ = ["ConnectionInfo", "create_connection"]
