"""xgit - a command-line accelerator for everyday git workflows."""

__version__ = '0.2.2'

from xgit.core.repository import Repository
from xgit.exceptions import XgitError

__all__ = [
    'Repository',
    'XgitError',
]
