"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

from .config.loader import HOME_ENV_VAR

_LOGGING_INITIALISED = False


def log_directory() -> Path:
    env_root = os.environ.get(HOME_ENV_VAR)
    root = Path(env_root).expanduser() if env_root else Path.cwd()
    return root.resolve() / "logs"


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = log_directory()
    error_log = log_dir / "error.log"
    harvester_log = log_dir / "harvester.log"

    if not _LOGGING_INITIALISED:
        (log_dir / "providers").mkdir(parents=True, exist_ok=True)
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        # Console stays quiet unless debugging; stdout belongs to results
                        "class": "logging.StreamHandler",
                        "level": level if verbose else "ERROR",
                        "formatter": "plain",
                    },
                    "harvester_file": {
                        "class": "logging.FileHandler",
                        "level": level,
                        "filename": str(harvester_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "article_harvester": {
                        "handlers": ["console", "harvester_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("article_harvester")


def provider_logger(provider_id: str) -> structlog.BoundLogger:
    """Return a logger bound to a provider, writing to its own log file as well."""

    configure_logging()
    provider_log_path = log_directory() / "providers" / f"{provider_id}.log"
    provider_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger_name = f"article_harvester.provider.{provider_id}"
    py_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler)
        and handler.baseFilename == str(provider_log_path)
        for handler in py_logger.handlers
    ):
        file_handler = logging.FileHandler(provider_log_path, encoding="utf-8")
        global_logger = logging.getLogger("article_harvester")
        if global_logger.handlers:
            file_handler.setFormatter(global_logger.handlers[0].formatter)
        file_handler.setLevel(logging.INFO)
        py_logger.addHandler(file_handler)

    return structlog.get_logger(logger_name).bind(provider=provider_id)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = ["configure_logging", "log_directory", "provider_logger", "tail_log"]
