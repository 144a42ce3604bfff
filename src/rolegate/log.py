"""Logging setup for the ``rolegate`` logger tree.

Modules log through plain ``logging.getLogger(__name__)``; the JSON format
renders those stdlib records through structlog's processor chain.
"""

from __future__ import annotations

import logging

import structlog

from rolegate.config.models import RolegateConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """One JSON object per line: event, level, logger, timestamp."""
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
        ],
    )


class _RolegateHandler(logging.StreamHandler):
    """Marker type so reconfiguring replaces our handler and nothing else."""


def configure_logging(config: RolegateConfig) -> logging.Logger:
    """Apply ``log_level`` and ``log_format`` to the ``rolegate`` logger."""
    logger = logging.getLogger("rolegate")
    logger.setLevel(_LEVELS[config.log_level])

    for handler in list(logger.handlers):
        if isinstance(handler, _RolegateHandler):
            logger.removeHandler(handler)

    handler = _RolegateHandler()
    if config.log_format == "json":
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger
