"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from datenight.core.context import get_generation_id


class GenerationIdFilter(logging.Filter):
    """Add generation_id attribute to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.generation_id = get_generation_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Configure application logging once at startup."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(generation_id)s | %(message)s",
                }
            },
            "filters": {
                "generation_id": {
                    "()": "datenight.core.logging.GenerationIdFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level.upper(),
                    "filters": ["generation_id"],
                }
            },
            "root": {
                "handlers": ["console"],
                "level": log_level.upper(),
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
