import logging.config
from typing import Any, Dict, Optional

from .settings import settings


def build_logging_config(level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "estate_search": {"handlers": ["console"], "level": level, "propagate": False},
            # the client logs every request at INFO
            "elastic_transport": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Install the logging configuration once at start-up"""
    logging.config.dictConfig(build_logging_config((level or settings.log_level).upper()))
