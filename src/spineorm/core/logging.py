"""
spine-orm logging - structured events for the operation pipeline.

Manifesto:
    An ORM is only debuggable if you can see which step ran and which SQL
    it sent. Pipeline modules log named events (``hook_exec``,
    ``sql_executed``, ``association_saved``, ``preload_segment``) with
    keyword fields; this module decides how those events are rendered.

    - **One shape:** every event carries service, level and logger name
    - **Scoped:** ``operation_scope()`` tags every event of one DB call
    - **Readable SQL:** statements are whitespace-collapsed and clipped

Architecture:
    ::

        logger.debug("sql_executed", sql=..., vars=2, rows_affected=1)
            │
            ▼
        merge_contextvars        operation / model from operation_scope()
        TimeStamper              ISO timestamp
        add_log_level / name
        _add_service_metadata    service.name
        _compact_sql             "INSERT INTO  t\\n (a)" → "INSERT INTO t (a)"
        _ecs_keys                timestamp → @timestamp, level → log.level (JSON)
        JSONRenderer | ConsoleRenderer

Examples:
    >>> from spineorm.core.logging import configure_logging, get_logger, operation_scope
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> with operation_scope(operation="create", model="User"):
    ...     logger.debug("hook_exec", group="create", step="create_sql")

Tags:
    logging, structlog, observability, json-logging, spine-orm

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "spine-orm"

#: Longest SQL text kept in an event; ``None`` keeps statements whole.
_SQL_PREVIEW: int | None = 500


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _compact_sql(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Collapse whitespace in the ``sql`` field and clip it to the preview length."""
    sql = event_dict.get("sql")
    if not isinstance(sql, str):
        return event_dict
    sql = " ".join(sql.split())
    if _SQL_PREVIEW is not None and len(sql) > _SQL_PREVIEW:
        sql = sql[:_SQL_PREVIEW] + "..."
    event_dict["sql"] = sql
    return event_dict


def _ecs_keys(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename timestamp and level to their ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "spine-orm",
    sql_preview: int | None = 500,
) -> None:
    """Configure structlog for the pipeline's events.

    Args:
        level: Minimum level; pipeline SQL events are emitted at DEBUG.
        json_format: JSON when True, console when False, JSON unless stdout
            is a terminal when None.
        service: Value of the ``service.name`` field.
        sql_preview: Clip logged SQL to this many characters (None: never).
    """
    global _SERVICE_NAME, _SQL_PREVIEW
    _SERVICE_NAME = service
    _SQL_PREVIEW = sql_preview
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
        _compact_sql,
    ]
    if json_format:
        processors += [_ecs_keys, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


@contextmanager
def operation_scope(**fields: Any) -> Generator[None, None, None]:
    """Attach ``fields`` to every event logged inside the block.

    Scopes nest; an inner scope's fields are removed on exit and the outer
    ones stay.
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def bind_context(**fields: Any) -> None:
    """Attach ``fields`` to every later event in this context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "operation_scope",
]
