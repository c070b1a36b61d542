"""
Log utilities.

Post bodies, titles and anonymous ids are never passed to a logger; log
thread/post ids and outcome categories only.
"""
import logging
import os
import sys

from rich.logging import RichHandler

LOG_LEVEL_ENV_VAR = "SAFEHARBOR_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def resolve_log_level() -> int:
    """Log level from SAFEHARBOR_LOG_LEVEL, falling back to INFO on bad values."""
    level_str = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL)
    level = getattr(logging, level_str.upper(), None)
    if not isinstance(level, int):
        # Called before any logger is configured, so write straight to stderr.
        print(
            f"WARNING: Invalid log level '{level_str}', falling back to {DEFAULT_LOG_LEVEL}",
            file=sys.stderr,
        )
        level = getattr(logging, DEFAULT_LOG_LEVEL)
    return level


def create_log_handler() -> logging.Handler:
    if sys.stderr.isatty():
        return RichHandler()
    # Vercel and containers have no TTY; Rich's columns would eat the message width.
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.handlers = [create_log_handler()]
    logger.propagate = False
    logger.setLevel(resolve_log_level())
    return logger
