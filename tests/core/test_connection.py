"""Tests for the connection factory."""

from pathlib import Path

import pytest

from spineorm.backends.sqlite import SqliteConnection
from spineorm.core.connection import ConnectionInfo, create_connection
from spineorm.core.errors import ConfigError


class TestMemory:
    @pytest.mark.parametrize("url", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory_variants(self, url):
        conn, info = create_connection(url)
        try:
            assert isinstance(conn, SqliteConnection)
            assert info.backend == "sqlite"
            assert info.persistent is False
        finally:
            conn.close()


class TestFile:
    def test_sqlite_url_creates_parent_dirs(self, tmp_db_path):
        conn, info = create_connection(f"sqlite:///{tmp_db_path}")
        try:
            assert info.persistent is True
            assert info.resolved_path == str(Path(tmp_db_path).resolve())
            assert Path(tmp_db_path).parent.is_dir()
        finally:
            conn.close()

    def test_relative_path_uses_data_dir(self, tmp_path):
        conn, info = create_connection("orm.db", data_dir=str(tmp_path))
        try:
            assert info.resolved_path == str((tmp_path / "orm.db").resolve())
        finally:
            conn.close()


class TestErrors:
    def test_unknown_scheme(self):
        with pytest.raises(ConfigError, match="redis"):
            create_connection("redis://localhost/0")


class TestConnectionInfo:
    def test_repr_prefers_path(self):
        info = ConnectionInfo(backend="sqlite", persistent=True, url="x.db", resolved_path="/d/x.db")
        assert "path='/d/x.db'" in repr(info)
        assert info.is_sqlite
