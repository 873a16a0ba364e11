"""
Logging configuration.

Every module logs through ``logging.getLogger(__name__)``.
This module wires those loggers to a single stdout handler
at application start-up. Level comes from LOG_LEVEL.
"""

import logging.config

from ledger_core.config import get_settings


def get_logging_config(level: str) -> dict:
    """Return a dictConfig mapping for the given level."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "ledger_core": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            # SQL echo is noisy; only warnings unless explicitly asked for
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Apply the logging configuration (idempotent)."""
    logging.config.dictConfig(
        get_logging_config(level or get_settings().LOG_LEVEL)
    )
