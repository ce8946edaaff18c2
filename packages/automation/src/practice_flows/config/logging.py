"""Structured logging for flows, the API and the CLI.

Log lines go to stderr so that ``practice-flows run`` keeps stdout for the
flow's JSON output. Request ids and flow names bound with
:func:`bind_request_context` (or ``bound_contextvars``) are merged into every
line emitted while they are bound.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from practice_flows.config.settings import get_settings

SERVICE_NAME = "practice-flows"

# Transport chatter that drowns out flow events at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag each line with the service so shared log sinks can filter on it."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(log_format: Literal["json", "console"]) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service,
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        level: Log level. Defaults to ``LOG_LEVEL`` from settings.
        format: ``json`` for log shippers, ``console`` for a terminal.
            Defaults to ``LOG_FORMAT`` from settings.
    """
    settings = get_settings()
    log_level = getattr(logging, level or settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    logging.getLogger().setLevel(log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=build_processors(format or settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name."""
    return structlog.get_logger(name)


def bind_request_context(**values: str) -> None:
    """Attach values (request id, flow name) to every log line in this task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    """Drop values attached with :func:`bind_request_context`."""
    structlog.contextvars.clear_contextvars()
