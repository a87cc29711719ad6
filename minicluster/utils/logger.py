from enum import Enum
import logging
import logging.config
from pathlib import Path

from minicluster.config import settings


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def build_logging_config(level: LogLevel, log_file: Path | None = None) -> dict:
    handlers = {
        "console": {
            "formatter": "colored",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file is not None:
        handlers["file"] = {
            "formatter": "plain",
            "class": "logging.FileHandler",
            "filename": str(log_file),
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colored": {
                "()": "colorlog.ColoredFormatter",
                "format": "%(asctime)s - %(name)s - %(log_color)s%(levelname)s%(reset)s - %(message)s",
                "log_colors": {
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            },
            "plain": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s",
            },
        },
        "handlers": handlers,
        "root": {
            "level": LogLevel.WARNING.value,
            "handlers": list(handlers),
        },
        "loggers": {
            "minicluster": {"level": level.value},
        },
    }


def configure_logging(level: str | None = None, log_file: Path | None = None) -> None:
    log_level = LogLevel((level or settings.LOG_LEVEL).upper())
    logging.config.dictConfig(build_logging_config(log_level, log_file))


configure_logging()
