"""Centralized logging configuration for StreamSense."""

import logging
import sys
from typing import Any, Literal

from streamsense.config import get_settings


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None
) -> None:
    """Configure logging for the application.

    Args:
        level: Override log level (default: INFO for production, DEBUG otherwise)
    """
    settings = get_settings()

    if level is None:
        level = "INFO" if settings.is_production else "DEBUG"

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)


class LogContext:
    """Prefixes log messages with ``[key=value]`` pairs.

    Used by per-user components so concurrent users can be told apart in logs:

        log = LogContext(logger, user="u-42")
        log.info("Profile rebuilt")  # "[user=u-42] Profile rebuilt"
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self.prefix = " ".join(f"[{k}={v}]" for k, v in context.items())

    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.log(level, f"{self.prefix} {msg}", *args, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)
