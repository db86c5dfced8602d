"""Logging configuration driven by ObservabilityConfig.

Modules log through ``logging.getLogger(__name__)`` and pass structured
context with ``extra={...}``. This module turns those records into either
plain text lines or, through structlog's ProcessorFormatter, JSON lines
that keep the extra fields.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

from .config import ObservabilityConfig, get_config


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering a stdlib record and its ``extra`` fields as JSON."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ExtraAdder(),
            structlog.processors.format_exc_info,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )


def configure_logging(config: Optional[ObservabilityConfig] = None) -> None:
    """Configure the root logger.

    Args:
        config: Observability settings; defaults to the application config.
    """
    config = config or get_config().observability

    handler = logging.StreamHandler()
    if config.structured:
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(config.level.upper())
