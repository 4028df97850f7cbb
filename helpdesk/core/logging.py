"""Logging configuration for the helpdesk API."""

import logging
from logging.config import dictConfig

from helpdesk.core.config import Settings


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the root logger from settings and return the application logger."""

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": settings.LOG_FORMAT,
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    logger = logging.getLogger("helpdesk")
    logger.setLevel(level)
    return logger
