"""
Logging Configuration for Tankwatch Analytics
Structured (structlog) logging on top of the stdlib logging module

The engine modules only call ``structlog.get_logger(__name__)``; nothing is
configured on import. Applications (API layer, batch jobs) call
``setup_logging()`` once at startup.

Environment:
    TANKWATCH_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR  (default INFO)
    TANKWATCH_LOG_FORMAT  json | console                   (default console)
"""

import logging
import os
import sys
from typing import Optional

import structlog


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("TANKWATCH_LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name; falls back to TANKWATCH_LOG_LEVEL
        json_logs: Render JSON lines; falls back to TANKWATCH_LOG_FORMAT == "json"

    Returns:
        Logger bound to "tankwatch"
    """
    log_level = _resolve_level(level)
    if json_logs is None:
        json_logs = os.getenv("TANKWATCH_LOG_FORMAT", "console").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    log = structlog.get_logger("tankwatch")
    log.info(
        "Structured logging configured",
        log_level=logging.getLevelName(log_level),
        log_format="json" if json_logs else "console",
    )
    return log
