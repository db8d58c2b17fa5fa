"""Utilities module for common helper functions.

This module contains:
- Logging setup
- Ignore file handling (.gitignore)
"""

from xgit.utils.ignore import IgnoreMatcher, IgnorePattern
from xgit.utils.log import configure_logging, get_logger

__all__ = [
    'IgnoreMatcher', 'IgnorePattern',
    'configure_logging', 'get_logger',
]
