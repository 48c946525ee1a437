"""
Logging configuration.

Structured logging via structlog. Call setup_logging() once from an entry
point (CLI, API startup); library modules only call get_logger(__name__).
"""

from __future__ import annotations

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

from decision_checkpoint.config import Settings, get_settings


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["service"] = "decision-checkpoint"
    return event_dict


def setup_logging(settings: Optional[Settings] = None) -> structlog.stdlib.BoundLogger:
    """
    Configure stdlib logging and structlog.

    Args:
        settings: Settings to read log level/format from (defaults to the
            cached environment settings)

    Returns:
        Root structlog logger
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_service_context,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
