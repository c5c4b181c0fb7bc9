import logging
import logging.config
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# "text" o "json"
LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()
LOG_FILE = os.getenv("LOG_FILE")


def setup_logging(log_level: str = LOG_LEVEL, log_format: str = LOG_FORMAT) -> None:
    """
    Configures logging for the API and uvicorn.
    """
    formatter = "json" if log_format == "json" else "default"
    handlers = ["console"]

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "class": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": log_level,
            },
        },
        "loggers": {},
    }

    if LOG_FILE:
        log_dir = os.path.dirname(LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "level": log_level,
            "filename": LOG_FILE,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "encoding": "utf8",
        }
        handlers.append("file")

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        config["loggers"][name] = {
            "handlers": handlers,
            "level": "INFO",
            "propagate": False,
        }
    config["loggers"]["api"] = {
        "handlers": handlers,
        "level": log_level,
        "propagate": False,
    }

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured (%s, %s)", log_level, log_format)
