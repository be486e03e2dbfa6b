"""Logging configuration for the release pipeline.

Provides centralized logging with secret redaction to ensure access
tokens are never written to CI logs or log files.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional


# Secret patterns to redact from logs
SECRET_PATTERNS = [
    # Authorization headers
    (re.compile(r'(Authorization[\'"\s:=]+(?:Bearer|token)\s+)[^\s,}\]"\']+', re.IGNORECASE),
     r'\1[REDACTED]'),
    # GitHub token shapes
    (re.compile(r'\bgh[pousr]_[A-Za-z0-9_]{20,}'), '[REDACTED]'),
    (re.compile(r'\bgithub_pat_[A-Za-z0-9_]{20,}'), '[REDACTED]'),
    # Tokens in query strings or key=value pairs
    (re.compile(r'((?:access_)?token["\s:=]+)[^\s,&}\]"\']+', re.IGNORECASE), r'\1[REDACTED]'),
]


class SecretRedactingFormatter(logging.Formatter):
    """Custom formatter that redacts access tokens from log messages."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, redacting any secrets."""
        message = super().format(record)
        for pattern, replacement in SECRET_PATTERNS:
            message = pattern.sub(replacement, message)
        return message


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure pipeline logging with secret redaction.

    Args:
        level: Logging level (default INFO)
        log_file: Optional file path for log output
        console: Whether to output to console (default True)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("release_pipeline")
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = SecretRedactingFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # urllib3 logs full request lines at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger


def get_logger(name: str = "release_pipeline") -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default is pipeline logger)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
