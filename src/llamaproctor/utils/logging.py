"""Logging setup utilities for llamaproctor.

Configures logging for the entire application based on the logging
configuration settings.
"""

from __future__ import annotations

import logging
import re
import sys

from llamaproctor.config.settings import LoggingConfig

_URI_CREDENTIALS = re.compile(r"(mongodb(?:\+srv)?://)[^:/@]+:[^@]+@")


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the llamaproctor application.

    Sets up the 'llamaproctor' logger with the specified level, format,
    and optional file handler.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("llamaproctor")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.info("Logging initialized at %s level", config.level)


def mask_credentials(uri: str) -> str:
    """Replace the user:password part of a MongoDB URI with asterisks."""
    return _URI_CREDENTIALS.sub(r"\1***:***@", uri)
