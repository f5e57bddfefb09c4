"""Structured logging setup for the reporting gateway.

Modules keep using ``logging.getLogger(__name__)``; records are rendered by
structlog, as JSON lines in production or console lines in development.
Context bound with ``structlog.contextvars`` (the request correlation id) is
merged into every record.
"""

import logging
import sys
from typing import Any, List

import structlog

PACKAGE_LOGGER = "reporting_gateway"

_HANDLER_MARK = "_reporting_gateway"


def _pre_chain() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def build_formatter(fmt: str = "json") -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering stdlib records through structlog processors."""
    if fmt.lower() == "json":
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def configure_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """Install a stdout handler on the package logger.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.
    """
    app_logger = logging.getLogger(PACKAGE_LOGGER)
    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(app_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            app_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(build_formatter(fmt))
    setattr(console_handler, _HANDLER_MARK, True)
    app_logger.addHandler(console_handler)
    return app_logger
