import logging

import structlog

from pulse_recs.config import settings

SERVICE_NAME = "pulse-recs"


def _add_service(_logger, _method, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(level: str) -> None:
    """JSON lines in production, pretty console output when debugging.

    stdlib logging (apscheduler, uvicorn, httpx) is set to the same level so
    noisy libraries do not drown the structured events.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer()
            if numeric == logging.DEBUG
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )


configure_logging(settings.log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**values: str) -> None:
    """Attach per-request fields (user_id, scope, ...) to every log line of this task."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)
