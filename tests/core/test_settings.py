"""Tests for ORMSettings."""

import pytest
from pydantic import ValidationError

from spineorm.core.settings import ORMSettings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for key in ("SPINEORM_DATABASE_URL", "SPINEORM_LOG_LEVEL", "SPINEORM_DIALECT"):
            monkeypatch.delenv(key, raising=False)
        settings = ORMSettings(_env_file=None)
        assert settings.database_url == "memory"
        assert settings.dialect is None
        assert settings.save_associations is True
        assert settings.order_by_pk_direction == "ASC"


class TestEnvironment:
    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("SPINEORM_DATABASE_URL", "sqlite:///tmp/app.db")
        monkeypatch.setenv("SPINEORM_SAVE_ASSOCIATIONS", "false")
        monkeypatch.setenv("SPINEORM_LOG_LEVEL", "debug")
        settings = ORMSettings(_env_file=None)
        assert settings.database_url == "sqlite:///tmp/app.db"
        assert settings.save_associations is False
        assert settings.log_level == "DEBUG"


class TestValidation:
    def test_rejects_unknown_direction(self):
        with pytest.raises(ValidationError):
            ORMSettings(_env_file=None, order_by_pk_direction="SIDEWAYS")

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            ORMSettings(_env_file=None, log_format="xml")
