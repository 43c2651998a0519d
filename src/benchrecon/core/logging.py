"""structlog configuration."""

from __future__ import annotations

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Install the structlog processor chain once per process.

    Console rendering is used for local development; ``json_output`` switches
    to one JSON object per event for uat/prod log shipping.
    """
    global _configured
    if _configured:
        return

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )
    _configured = True
