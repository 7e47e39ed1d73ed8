"""Shared logging configuration for the link resolution service.

Every entry point (Cloud Function handler, local server, CLI) calls
``setup_logging`` once so log lines share one format on stdout.
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Optional

# Chatty client libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "postgrest")


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    include_timestamp: bool = True
) -> None:
    """Configure root logger with a stdout console handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, reads from LOG_LEVEL env var or defaults to INFO.
        format_string: Custom format string. If None, uses default format.
        include_timestamp: Whether to include timestamp in log messages.

    Example:
        >>> setup_logging(level="DEBUG")
        >>> logger = logging.getLogger(__name__)
        >>> logger.debug("Stage router picked %s", "hblinks")
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()

    if format_string is None:
        format_string = "[%(levelname)s] %(name)s: %(message)s"
        if include_timestamp:
            format_string = "%(asctime)s " + format_string

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return a named logger, optionally pinned to its own level.

    Args:
        name: Logger name (typically __name__)
        level: Optional logging level override
    """
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    return logger
