"""Branch lifecycle: create, list, checkout, delete and merge status."""

import enum
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from xgit.core.config import section_name
from xgit.core.hash import short_oid
from xgit.core.lockfile import LockFile
from xgit.core.refs import HEADS_PREFIX, SYMREF_PREFIX, check_ref_name
from xgit.exceptions import (
    BranchAlreadyExists,
    BranchNotFound,
    DetachedHead,
    MainNotFound,
    ReferenceNotFound,
    UnrelatedHistories,
    XgitError,
)
from xgit.operations.checkout import checkout_tree
from xgit.utils.log import get_logger

logger = get_logger(__name__)

MAIN_BRANCH_NAMES = ('main', 'master')


class MergeStatus(enum.Enum):
    """Whether a branch's commits are all contained in the main line."""
    MERGED = 'merged'
    NOT_MERGED = 'not_merged'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class BranchInfo:
    """Per-branch projection consumed by the branch table renderer."""
    name: str
    is_current: bool
    commit_info: Optional[str]
    merge_status: MergeStatus
    remote_tracking: Optional[str]
    pull_request: Optional[Any] = None


class BranchManager:
    """
    Creates, lists, checks out and deletes local branches.

    Policy about which branches may be deleted belongs to the caller
    (see ``xgit.operations.prune``); ``delete`` only removes the ref.
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo

    @property
    def refs(self):
        return self.repo.refs

    def _tip(self, branch: str) -> str:
        oid = self.refs.resolve(HEADS_PREFIX + branch)
        if oid is None:
            raise BranchNotFound(branch)
        return oid

    def exists(self, branch: str) -> bool:
        return self.refs.resolve(HEADS_PREFIX + branch) is not None

    def list_branches(self) -> List[str]:
        """
        Local branch names, sorted.

        An unborn branch has no ref yet and is not listed.
        """
        return [name for name, _ in self.refs.list_branches()]

    def current_branch(self) -> str:
        """
        Name of the branch HEAD points at (which may be unborn).

        Raises:
            DetachedHead: If HEAD is not a symbolic ref to a branch
        """
        name = self.refs.get_current_branch()
        if name is None:
            raise DetachedHead()
        return name

    def create_and_checkout(self, name: str) -> None:
        """
        Create a branch at HEAD and switch to it.

        While HEAD is unborn only HEAD is re-pointed; the branch comes into
        existence with its first commit.

        Args:
            name: New branch name

        Raises:
            InvalidReferenceName: If git would reject the name
            BranchAlreadyExists: If the name is taken
        """
        ref_name = check_ref_name(HEADS_PREFIX + name)
        if self.refs.exists(ref_name):
            raise BranchAlreadyExists(name)

        head = self.refs.resolve_head()
        if head is not None:
            self.refs.update_ref(ref_name, head)
            logger.info(f"Created branch {name} at {short_oid(head)}")
        self.refs.set_head(name)

    def checkout(self, name: str) -> None:
        """
        Switch the work tree and HEAD to a branch.

        HEAD is locked before the work tree is touched, so contention
        fails before anything changes. Local edits the switch would
        overwrite abort the checkout with nothing modified.

        Raises:
            BranchNotFound: If the branch does not exist
            CheckoutConflict: If uncommitted changes would be overwritten
            LockError: If HEAD is locked by another process
        """
        tip = self._tip(name)
        commit = self.repo.read_commit(tip)
        with LockFile(self.refs.head_file) as lock:
            if not self.repo.is_bare:
                checkout_tree(self.repo, commit.tree)
            lock.write(f'{SYMREF_PREFIX}{HEADS_PREFIX}{name}\n')
        logger.info(f"Switched to branch {name}")

    def main_branch(self) -> str:
        """
        The main line: 'main' if it exists, else 'master'.

        Raises:
            MainNotFound: If neither exists
        """
        for candidate in MAIN_BRANCH_NAMES:
            if self.exists(candidate):
                return candidate
        raise MainNotFound()

    def is_merged_to_main(self, branch: str) -> bool:
        """
        True if every commit on branch is already reachable from the main line.

        Raises:
            BranchNotFound: If branch does not exist
            MainNotFound: If neither 'main' nor 'master' exists
        """
        main_tip = self._tip(self.main_branch())
        tip = self._tip(branch)
        try:
            return self.repo.graph.merge_base(tip, main_tip) == tip
        except UnrelatedHistories:
            return False

    def delete(self, branch: str) -> None:
        """
        Remove a branch ref. No safety checks are made here.

        Raises:
            BranchNotFound: If the branch does not exist
        """
        if not self.refs.delete_ref(HEADS_PREFIX + branch):
            raise BranchNotFound(branch)
        logger.info(f"Deleted branch {branch}")

    def branch_commit_info(self, branch: str) -> str:
        """'<short id> <subject>' of a branch tip."""
        tip = self._tip(branch)
        return f"{short_oid(tip)} {self.repo.read_commit(tip).summary}"

    def upstream(self, branch: str) -> Optional[str]:
        """
        Configured upstream of a branch as '<remote>/<branch>', or None.

        Reads ``branch.<name>.remote`` and ``branch.<name>.merge``.
        """
        section = section_name('branch', branch)
        remote = self.repo.config.get(section, 'remote')
        merge = self.repo.config.get(section, 'merge')
        if not remote or not merge:
            return None
        if merge.startswith(HEADS_PREFIX):
            merge = merge[len(HEADS_PREFIX):]
        if remote == '.':
            return merge
        return f"{remote}/{merge}"

    def remote_tracking_info(self, branch: str) -> str:
        """
        Upstream tracking label for a branch.

        Raises:
            BranchNotFound: If the branch does not exist
            ReferenceNotFound: If no upstream is configured
        """
        self._tip(branch)
        tracking = self.upstream(branch)
        if tracking is None:
            raise ReferenceNotFound(f"{branch}@{{upstream}}", f"No remote tracking branch for '{branch}'")
        return tracking

    def set_upstream(self, branch: str, remote: str, remote_branch: Optional[str] = None) -> None:
        """Record ``remote/remote_branch`` as the upstream of branch."""
        section = section_name('branch', branch)
        self.repo.config.set(section, 'remote', remote)
        self.repo.config.set(section, 'merge', HEADS_PREFIX + (remote_branch or branch))

    def merge_status(self, branch: str) -> MergeStatus:
        try:
            return MergeStatus.MERGED if self.is_merged_to_main(branch) else MergeStatus.NOT_MERGED
        except XgitError as e:
            logger.debug(f"Merge status of {branch} unknown: {e}")
            return MergeStatus.UNKNOWN

    def branch_infos(self, pr_lookup: Optional[Callable[[str], Any]] = None) -> List[BranchInfo]:
        """
        Build the display projection of every local branch.

        Args:
            pr_lookup: Optional callable mapping a branch name to
                pull-request metadata (or None)

        Returns:
            List of BranchInfo in branch name order
        """
        current = self.refs.get_current_branch()
        infos = []
        for name in self.list_branches():
            infos.append(BranchInfo(
                name=name,
                is_current=name == current,
                commit_info=self.branch_commit_info(name),
                merge_status=self.merge_status(name),
                remote_tracking=self.upstream(name),
                pull_request=pr_lookup(name) if pr_lookup else None,
            ))
        return infos
