"""Central logging helpers"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
import structlog.stdlib

from resurrect.config import settings

_DEFAULT_FORMAT = "%(message)s"


def setup_logging(level: int | str | None = None, json: bool = False) -> None:
    """Configure structlog + stdlib logging for the command line tools"""
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(level=level, stream=sys.stderr, format=_DEFAULT_FORMAT, force=True)

    if json:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger(__name__).debug("logging_initialized")
