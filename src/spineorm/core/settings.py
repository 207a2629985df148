"""Settings for spine-orm.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    ``ORMSettings`` is the one place that reads ``SPINEORM_*`` variables
    and ``.env`` files; ``DB.open()`` turns it into a connection, a dialect
    and a logging setup.

    - **Pydantic validation:** Type-checked at startup, not mid-operation
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** In-memory SQLite, INFO logs, cascades on

Features:
    - **database_url:** Anything ``create_connection()`` accepts
    - **dialect:** Optional override of the dialect guessed from the URL
    - **log_level / log_format / log_sql_preview:** Passed to ``configure_logging()``
    - **save_associations:** Default for association cascades
    - **order_by_pk_direction:** Direction used by ``DB.first()``/``DB.last()``

Examples:
    >>> from spineorm.core.settings import ORMSettings
    >>> settings = ORMSettings(database_url="sqlite:///app.db")
    >>> settings.log_format
    'json'

Tags:
    settings, configuration, pydantic, environment, spine-orm

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ORMSettings(BaseSettings):
    """spine-orm configuration.

    Fields
    ──────
    database_url           : URL, file path or ``memory``
    dialect                : Dialect name; ``None`` infers it from the URL
    log_level              : Structlog log level
    log_format             : ``json`` or ``console``
    log_sql_preview        : Longest SQL text kept in a log event
    save_associations      : Cascade saves into related records
    order_by_pk_direction  : ``ASC`` or ``DESC``
    """

    model_config = SettingsConfigDict(
        env_prefix="SPINEORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="memory")
    dialect: str | None = Field(default=None, description="Overrides the URL-derived dialect")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_sql_preview: int | None = Field(
        default=500, ge=1, description="Clip logged SQL; None keeps it whole"
    )

    # ── Pipeline defaults ────────────────────────────────────────
    save_associations: bool = Field(default=True)
    order_by_pk_direction: Literal["ASC", "DESC"] = Field(default="ASC")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


__all__ = ["ORMSettings"]
