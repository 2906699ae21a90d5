"""Structured logging shared by the API server and the project store.

Every entry goes through one structlog processor chain, bridged to stdlib
logging so uvicorn, httpx and SQLAlchemy records render the same way:
JSON lines when ``debug`` is off, the console renderer when it is on.

Two pieces of context are merged into each entry when present:
- ``correlation_id``: the X-Request-ID of the HTTP request being served
- ``session_status``: the session mode the project store is running in,
  bound whenever the store switches between guest and signed-in
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

from design2code.core.config import Settings, get_settings

# Third-party loggers that only matter when something goes wrong
QUIET_LOGGERS = {
    "uvicorn.access": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "aiosqlite": "WARNING",
}


def add_correlation_id(logger, method, event_dict):
    """Copy the request's correlation id into the entry."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def bind_session_status(status: str) -> None:
    """Tag every later entry in this context with the store's session mode."""
    structlog.contextvars.bind_contextvars(session_status=status)


def shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_structlog(
    settings: Settings | None = None,
    *,
    log_level: str | None = None,
    json_logs: bool | None = None,
) -> None:
    """Install the processor chain and the stdlib handler.

    Must run before anything logs: structlog caches loggers on first use.
    Level and renderer follow ``settings.debug`` unless given explicitly.
    """
    settings = settings or get_settings()
    if log_level is None:
        log_level = "DEBUG" if settings.debug else "INFO"
    if json_logs is None:
        json_logs = not settings.debug

    processors = shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {name: {"level": level} for name, level in QUIET_LOGGERS.items()},
    })

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
