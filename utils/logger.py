"""
Logging utility functions and helpers.
"""

import logging
from typing import Optional


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def short_hash(token_hash: Optional[str]) -> Optional[str]:
    """
    Truncate a token hash for log output.

    Full hashes are lookup keys for live credentials and stay out of logs.
    """
    if not token_hash:
        return token_hash
    return f"{token_hash[:16]}..."

