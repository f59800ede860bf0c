"""Logging for the portal: console always, a log file when LOG_FILE is set."""

import logging
import logging.config
import sys
from typing import Any, Dict

from gym_portal.core.config import settings

APP_LOGGER = "gym_portal"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

# Libraries that log every request or statement at INFO
QUIET_LOGGERS = {
    "uvicorn": "INFO",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "sqlalchemy": "WARNING",
}


def _app_level() -> str:
    if settings.ENVIRONMENT == "production":
        return "INFO"
    return "DEBUG" if settings.DEBUG else "INFO"


def build_logging_config() -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG" if settings.DEBUG else "INFO",
            "formatter": "detailed" if settings.DEBUG else "default",
            "stream": sys.stdout,
        },
    }
    app_handlers = ["console"]
    if settings.LOG_FILE:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": "INFO",
            "formatter": "detailed",
            "filename": settings.LOG_FILE,
            "mode": "a",
            "delay": True,
        }
        app_handlers.append("file")

    loggers: Dict[str, Any] = {
        "": {"handlers": ["console"], "level": "INFO", "propagate": False},
        APP_LOGGER: {"handlers": app_handlers, "level": _app_level(), "propagate": False},
    }
    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"handlers": ["console"], "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "detailed": {"format": DETAILED_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging() -> None:
    # A broken log stream must not kill the payment timers
    logging.raiseExceptions = False
    logging.config.dictConfig(build_logging_config())
    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn").setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER).info(
        f"Logging configured for {settings.ENVIRONMENT} (debug={settings.DEBUG}, file={settings.LOG_FILE or '-'})"
    )


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``gym_portal`` namespace."""
    if name == APP_LOGGER or name.startswith(f"{APP_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER}.{name}")


setup_logging()
