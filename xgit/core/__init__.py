"""Object and reference store access.

This package contains the core data structures:
- Git objects (Blob, Tree, Commit) and the object store
- Repository management
- Index/staging area
- Reference management
- Configuration management

For branch, merge and graph operations, see xgit.operations
For fetch, push and pull, see xgit.remote
"""

from xgit.core.config import Config
from xgit.core.hash import hash_object
from xgit.core.index import Index, IndexEntry
from xgit.core.objects import Blob, Commit, GitObject, Tree, TreeEntry
from xgit.core.refs import RefManager
from xgit.core.repository import Repository
from xgit.core.store import LooseObjectStore, ObjectStore

__all__ = [
    'GitObject',
    'Blob',
    'Tree',
    'TreeEntry',
    'Commit',
    'ObjectStore',
    'LooseObjectStore',
    'Repository',
    'Index',
    'IndexEntry',
    'RefManager',
    'Config',
    'hash_object',
]
