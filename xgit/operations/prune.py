"""Pruning of local branches that were merged and deleted upstream."""

from dataclasses import dataclass, field
from typing import Dict, List

from xgit.core.config import section_name
from xgit.core.refs import HEADS_PREFIX, REMOTES_PREFIX
from xgit.operations.branch import MAIN_BRANCH_NAMES
from xgit.utils.log import get_logger

logger = get_logger(__name__)


@dataclass
class PruneReport:
    """
    What a prune run did (or would do, on a dry run).

    Attributes:
        deleted: Branches deleted (or selected for deletion on a dry run)
        skipped: {branch: reason} for gone-upstream branches kept
        dry_run: Whether anything was actually deleted
    """
    deleted: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    dry_run: bool = False


class BranchPruner:
    """
    Deletes local branches whose upstream branch is gone and whose work is
    already on the main line.

    Never touches main/master, the current branch, or branches that never
    had an upstream (local-only work).
    """

    def __init__(self, repo, remote: str = 'origin'):
        """
        Args:
            repo: Repository instance
            remote: Remote whose deleted branches trigger pruning
        """
        self.repo = repo
        self.remote = remote

    def gone_branches(self) -> List[str]:
        """Local branches tracking a branch of this remote that no longer exists."""
        gone = []
        for branch in self.repo.branches.list_branches():
            section = section_name('branch', branch)
            if self.repo.config.get(section, 'remote') != self.remote:
                continue
            merge = self.repo.config.get(section, 'merge')
            if not merge or not merge.startswith(HEADS_PREFIX):
                continue
            tracking = f'{REMOTES_PREFIX}{self.remote}/{merge[len(HEADS_PREFIX):]}'
            if not self.repo.refs.exists(tracking):
                gone.append(branch)
        return gone

    def prune(self, dry_run: bool = False, fetch: bool = True) -> PruneReport:
        """
        Fetch with pruning, then delete merged branches whose upstream is gone.

        Args:
            dry_run: Report what would be deleted without deleting
            fetch: Refresh remote-tracking refs first

        Returns:
            PruneReport

        Raises:
            RemoteNotFound: If the remote is not configured
            MainNotFound: If neither 'main' nor 'master' exists
        """
        if fetch:
            self.repo.remote.fetch(self.remote, prune=True)

        main = self.repo.branches.main_branch()
        current = self.repo.refs.get_current_branch()
        report = PruneReport(dry_run=dry_run)

        for branch in self.gone_branches():
            if branch in MAIN_BRANCH_NAMES or branch == main:
                report.skipped[branch] = 'protected main branch'
            elif branch == current:
                report.skipped[branch] = 'currently checked out'
            elif not self.repo.branches.is_merged_to_main(branch):
                report.skipped[branch] = f'not merged to {main}'
            else:
                if not dry_run:
                    self.repo.branches.delete(branch)
                    self.repo.config.remove_section(section_name('branch', branch))
                report.deleted.append(branch)

        logger.info(
            f"{'Would prune' if dry_run else 'Pruned'} {len(report.deleted)} branch(es), "
            f"kept {len(report.skipped)}"
        )
        return report
