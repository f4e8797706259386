"""Structured logging setup.

structlog renders on top of the standard library logger so uvicorn's and
boto's records end up in the same stream. Development gets the console
renderer; any other ENVIRONMENT gets one JSON object per line.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog

from .config import settings

_configured = False


def get_log_level(name: Optional[str] = None) -> int:
    level_name = (name or settings.log_level or "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def is_development_environment() -> bool:
    return settings.environment.lower() in ("development", "dev", "local")


def configure_logging(force: bool = False) -> None:
    """Configure structlog and the stdlib root logger once per process."""
    global _configured
    if _configured and not force:
        return

    log_level = get_log_level()
    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(log_level)

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if is_development_environment():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True

    structlog.get_logger("wedding_photos.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment=settings.environment,
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
