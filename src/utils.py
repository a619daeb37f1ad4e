"""
Utility functions for receipt text processing and ledger storage
"""

import os
from decimal import Decimal
from typing import List

from loguru import logger


def split_lines(text: str) -> List[str]:
    """
    Split recognised receipt text into lines.

    Accepts \\n, \\r\\n and \\r separators; lines are returned untouched
    (no stripping) so that indices match the original text.
    """
    if not text:
        return []
    return text.replace('\r\n', '\n').replace('\r', '\n').split('\n')


def ensure_directory(dir_path: str) -> str:
    """
    Ensure directory exists, create if needed

    Args:
        dir_path: Directory path

    Returns:
        Absolute path to directory
    """
    if not dir_path:
        return os.path.abspath(".")
    path = os.path.abspath(dir_path)
    os.makedirs(path, exist_ok=True)
    return path


def format_processing_time(milliseconds: int) -> str:
    """
    Format processing time for display

    Args:
        milliseconds: Time in milliseconds

    Returns:
        Formatted string (e.g., "1.23s" or "456ms")
    """
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    return f"{milliseconds / 1000:.2f}s"


def format_money(amount: Decimal, currency: str = "USD") -> str:
    """Two-decimal display string, "$" prefix for USD."""
    value = Decimal(amount).quantize(Decimal("0.01"))
    if currency == "USD":
        return f"${value:,}"
    return f"{value:,} {currency}"


def setup_logging(log_file: str = "logs/divvy.log", level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_file: Path to log file
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    import sys

    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level
    )

    # Add file handler
    if log_file:
        ensure_directory(os.path.dirname(log_file))
        logger.add(
            log_file,
            rotation="10 MB",
            retention="30 days",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
        )

    logger.info("Logging initialized")
