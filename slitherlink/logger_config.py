import logging
import logging.config
import os
import sys
from typing import Optional, Union

DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(explicit: Optional[Union[str, int]] = None) -> str:
    """Explicit level, then env SLITHERLINK_LOG_LEVEL, else INFO."""
    for raw in (explicit, os.getenv("SLITHERLINK_LOG_LEVEL")):
        if raw is None or raw == "":
            continue
        if isinstance(raw, int):
            return logging.getLevelName(raw)
        name = str(raw).strip().upper()
        if isinstance(logging.getLevelName(name), int):
            return name
    return DEFAULT_LOG_LEVEL


def configure_logging(level: Optional[Union[str, int]] = None, log_file: Optional[str] = None):
    """
    Console logging for scripts. With ``log_file``, errors are also kept in
    a rotating file. The library itself never calls this.
    """
    level_name = resolve_log_level(level)

    handlers = {
        "console": {
            "level": level_name,
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": sys.stdout,
        },
    }
    if log_file:
        handlers["file"] = {
            "level": "ERROR",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "slitherlink": {
                "handlers": list(handlers),
                "level": level_name,
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)
    return logging.getLogger("slitherlink")
