import copy
import logging.config
from typing import Any, Dict, Optional

from career_roadmap.config import Config

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,  # Keep existing loggers like uvicorn's
    "formatters": {
        "default": {
            "format": "%(levelname)s:     %(asctime)s - %(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "career_roadmap": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
    },
}


def get_logging_config(level: Optional[str] = None) -> Dict[str, Any]:
    """LOGGING_CONFIG with the application logger at `level` (defaults to Config.LOG_LEVEL)."""
    config = copy.deepcopy(LOGGING_CONFIG)
    config["loggers"]["career_roadmap"]["level"] = (level or Config.LOG_LEVEL).upper()
    return config


def setup_logging(level: Optional[str] = None) -> None:
    logging.config.dictConfig(get_logging_config(level))
