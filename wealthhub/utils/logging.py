"""
Logging utilities for the Wealth Hub backend.

Provides standardized logger configuration following security and privacy rules.

CRITICAL SECURITY RULES:
- NEVER log Supabase Auth tokens, API keys, or secrets
- NEVER log identity document numbers, dates of birth or document images
- NEVER log full withdrawal account details (account numbers, IBANs, wallet addresses)

Acceptable logging:
- High-level events (e.g., "Deposit created", "KYC status changed")
- Record identifiers and status values
- Error codes and sanitized error messages
"""

import logging
from typing import Optional

from wealthhub.config import settings


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to settings.LOG_LEVEL)

    Returns:
        Configured logger instance

    Usage:
        >>> from wealthhub.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("High-level event occurred")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    # Add handler if not already configured (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def mask_value(value: Optional[str], visible: int = 4) -> str:
    """Mask all but the last `visible` characters of a sensitive string."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
