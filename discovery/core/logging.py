"""
structlog setup for the discovery service.

Engine modules log through plain ``logging.getLogger(__name__)``; the
``ProcessorFormatter`` below renders those records together with anything
bound through ``structlog.contextvars`` (the request middleware binds
``request_id`` and ``user_id``). Development gets the console renderer,
every other environment one JSON object per line.
"""

import logging
import sys

import structlog

# Libraries that are chatty at INFO outside development
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


def configure_logging(app_env: str = "dev", level: str = "INFO") -> None:
    """Route structlog and stdlib records through one stdout handler."""
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    dev = app_env == "dev"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer() if dev else structlog.processors.JSONRenderer(),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())

    if not dev:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
