"""Operations module for high-level xgit operations.

This module contains the repository state engine:
- Commit graph traversal and merge bases
- Branch lifecycle
- Merge algorithms
- Checkout logic
- Staging, commits and diffs
- Merged-branch pruning
"""

from xgit.operations.branch import BranchInfo, BranchManager, MergeStatus
from xgit.operations.diff import DiffEngine, FileDiff
from xgit.operations.graph import CommitGraph, CommitInfo, CommitWalk
from xgit.operations.merge import MergeAnalysis, MergeEngine, MergeResult
from xgit.operations.prune import BranchPruner, PruneReport
from xgit.operations.staging import Staging

__all__ = [
    'BranchManager', 'BranchInfo', 'MergeStatus',
    'DiffEngine', 'FileDiff',
    'CommitGraph', 'CommitInfo', 'CommitWalk',
    'MergeEngine', 'MergeResult', 'MergeAnalysis',
    'BranchPruner', 'PruneReport',
    'Staging',
]
