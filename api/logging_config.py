"""
Logging configuration for the Waitlist API

Call setup_logging() at application startup to configure logging.
"""

import logging
import logging.config
import sys
from typing import Dict, Any


def get_logging_config(log_level: str = "INFO") -> Dict[str, Any]:
    """
    Get logging configuration dictionary

    Args:
        log_level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logging configuration dict
    """
    def app_logger() -> Dict[str, Any]:
        return {"level": log_level, "handlers": ["console"], "propagate": False}

    def quiet_logger(level: str = "WARNING") -> Dict[str, Any]:
        return {"level": level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(levelname)s:     %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "detailed",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            # Application loggers
            "routers": app_logger(),
            "services": app_logger(),
            "forms": app_logger(),
            # Third-party library loggers (set to WARNING to reduce noise)
            "uvicorn": quiet_logger("INFO"),
            "uvicorn.access": quiet_logger(),
            "sqlalchemy": quiet_logger(),
            "httpx": quiet_logger(),
            "httpcore": quiet_logger(),
            "redis": quiet_logger(),
        },
        # Root logger - catches everything not caught by specific loggers
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging(log_level: str = "INFO"):
    """
    Configure logging for the application

    Args:
        log_level: Log level to use (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    config = get_logging_config(log_level)
    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
