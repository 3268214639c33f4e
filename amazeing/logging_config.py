import logging.config
import sys
from typing import Optional

from .config import Settings, settings as default_settings


def configure_logging(settings: Optional[Settings] = None):
    settings = settings or default_settings
    level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL

    handlers = {
        "console": {
            "level": level,
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": sys.stdout,
        },
    }
    if settings.LOG_FILE:
        handlers["file"] = {
            "level": "WARNING",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": settings.LOG_FILE,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
        },

        "handlers": handlers,

        "loggers": {
            "amazeing": {
                "handlers": list(handlers),
                "level": level,
                "propagate": False
            },
            # search traces are noisy at DEBUG
            "amazeing.services.generator": {
                "level": "INFO" if level == "DEBUG" else level,
            },
        }
    }

    logging.config.dictConfig(logging_config)
