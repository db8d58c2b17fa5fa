"""Remote module for distributed operations.

This module handles all remote-related functionality:
- Remote management (add, set-url, remove, list)
- Fetch operations
- Push operations
- Pull (fetch + merge)
"""

from xgit.remote.manager import FetchResult, PushResult, RemoteInfo, RemoteManager
from xgit.remote.refspec import Refspec

__all__ = [
    'RemoteManager',
    'RemoteInfo',
    'FetchResult',
    'PushResult',
    'Refspec',
]
