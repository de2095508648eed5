"""
Core Module - Logging setup.

Configures the root logger once for the API process.
Modules only ever call ``logging.getLogger(__name__)``.
"""

import logging
from typing import Optional


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_NOISY_LOGGERS = ("aiohttp.access", "uvicorn.access", "httpx")


def setup_logging(
    level: str = "INFO",
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Set up process-wide logging.

    Args:
        level: Log level name
        log_format: Format string (defaults to pipe-separated text)

    Returns:
        Root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=log_format or DEFAULT_FORMAT,
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return logging.getLogger()
