"""
Logging Configuration for Ads Decision Gate

Structured logging with JSON or console output. Every event carries the
app name and environment; the ingestion and decision loggers can run at
their own level so a noisy import can be traced without flooding the rest.
"""

import logging
import sys
from typing import Dict, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from adgate.config.settings import Settings, get_settings

# Per-row and per-connection chatter
QUIET_LOGGERS = ("aiosqlite", "asyncpg", "httpx", "httpcore", "python_multipart", "multipart")


def _app_context(settings: Settings):
    def add_app_context(logger, method_name, event_dict):
        event_dict.setdefault("app", settings.app_name)
        event_dict.setdefault("env", settings.app_env)
        return event_dict

    return add_app_context


def pipeline_log_levels(settings: Settings, default: int) -> Dict[str, int]:
    """Levels for the ingestion and decision loggers, falling back to `default`."""
    overrides = {
        "adgate.ingestion": settings.monitoring.ingestion_log_level,
        "adgate.decision": settings.monitoring.decision_log_level,
    }
    return {
        name: getattr(logging, level.upper(), default) if level else default
        for name, level in overrides.items()
    }


def configure_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        settings: Settings to read from, the cached ones by default
    """
    settings = settings or get_settings()
    level = log_level or settings.monitoring.log_level

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        _app_context(settings),
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [console_handler]
    root_logger.setLevel(numeric_level)

    # Route uvicorn through the same handler
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.addHandler(console_handler)
        logger.setLevel(numeric_level)

    pipeline_levels = pipeline_log_levels(settings, numeric_level)
    for logger_name, pipeline_level in pipeline_levels.items():
        logging.getLogger(logger_name).setLevel(pipeline_level)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(numeric_level, logging.WARNING))

    # SQL echo is controlled by settings.database.echo
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
        ingestion_level=logging.getLevelName(pipeline_levels["adgate.ingestion"]),
        decision_level=logging.getLevelName(pipeline_levels["adgate.decision"]),
    )
