"""Logging configuration using structlog."""

import logging
import sys

import structlog

from solwatch.config.settings import get_settings

# stdlib loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "websockets", "apscheduler")


def configure_logging() -> None:
    """Configure structlog and route third-party stdlib logs to stdout.

    Every event carries the service name and version, bound once as
    context variables so request-scoped bindings can be layered on top.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=settings.app_name.lower(), version=settings.app_version
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
