"""Staging and committing."""

import os
from pathlib import Path
from typing import Iterable, List, Union

from xgit.core.hash import short_oid
from xgit.core.objects import Commit
from xgit.core.refs import HEADS_PREFIX
from xgit.exceptions import MergeConflict, XgitError
from xgit.operations.diff import DiffEngine
from xgit.utils.ignore import get_ignore_matcher
from xgit.utils.log import get_logger

logger = get_logger(__name__)


class Staging:
    """
    Builds the next commit.

    ``add`` stages work-tree files into the index, ``commit`` turns the
    index into a commit on the current branch, and the diff helpers show
    what is staged.
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo

    def _require_work_tree(self) -> Path:
        if self.repo.is_bare:
            raise XgitError("This operation must be run in a work tree", {'path': str(self.repo.git_dir)})
        return self.repo.work_tree

    def _relative(self, pathspec: Union[str, Path]) -> str:
        work_tree = self._require_work_tree()
        path = Path(pathspec)
        if not path.is_absolute():
            path = work_tree / path
        path = Path(os.path.normpath(path))
        if path != work_tree and work_tree not in path.parents:
            raise XgitError(f"'{pathspec}' is outside repository at '{work_tree}'", {'path': str(pathspec)})
        rel = path.relative_to(work_tree).as_posix()
        return '' if rel == '.' else rel

    def add(self, pathspecs: Iterable[Union[str, Path]]) -> List[str]:
        """
        Stage files and directories.

        Directories are walked recursively, skipping ignored paths.
        Tracked files under a pathspec that no longer exist are removed
        from the index.

        Args:
            pathspecs: Paths relative to the work tree (or absolute)

        Returns:
            Sorted list of paths staged or removed

        Raises:
            XgitError: If a pathspec matches nothing
        """
        work_tree = self._require_work_tree()
        matcher = get_ignore_matcher(work_tree, self.repo.git_dir)
        index = self.repo.read_index()
        changed = set()

        for pathspec in pathspecs:
            rel = self._relative(pathspec)
            target = work_tree / rel if rel else work_tree
            matched = False

            if target.is_symlink() or target.is_file():
                matched = True
                if matcher.is_ignored(rel):
                    logger.warning(f"Not staging ignored path {rel}")
                else:
                    self._stage(index, rel, changed)
            elif target.is_dir():
                matched = True
                for dirpath, dirnames, filenames in os.walk(target):
                    base = Path(dirpath).relative_to(work_tree).as_posix()
                    base = '' if base == '.' else base + '/'
                    dirnames[:] = sorted(d for d in dirnames if not matcher.is_ignored(base + d, is_dir=True))
                    for name in sorted(filenames):
                        if not matcher.is_ignored(base + name):
                            self._stage(index, base + name, changed)

            # Tracked paths under the pathspec that were deleted
            for path in index.paths():
                if rel and path != rel and not path.startswith(rel + '/'):
                    continue
                matched = True
                file_path = work_tree / path
                if not (file_path.is_file() or file_path.is_symlink()):
                    index.remove_entry(path)
                    changed.add(path)

            if not matched:
                raise XgitError(f"pathspec '{pathspec}' did not match any files", {'pathspec': str(pathspec)})

        self.repo.write_index(index)
        logger.debug(f"Staged {len(changed)} path(s)")
        return sorted(changed)

    def _stage(self, index, rel: str, changed: set) -> None:
        old = index.get_entry(rel)
        oid = index.add_file(self.repo, rel)
        if old is None or old.sha1 != oid or old.mode != index.get_entry(rel).mode:
            changed.add(rel)

    def commit(self, message: str) -> str:
        """
        Commit the index on the current branch.

        On an unborn branch this creates the branch. During a conflicted
        merge whose conflicts have been resolved and staged, the commit gets
        MERGE_HEAD as its second parent and the merge state is cleared.

        Args:
            message: Commit message

        Returns:
            str: New commit id

        Raises:
            MissingIdentity: If user.name or user.email is not set
            MergeConflict: If unmerged index entries remain
        """
        author = self.repo.signature()
        index = self.repo.read_index()
        if index.has_conflicts():
            raise MergeConflict(index.conflicted_paths(), operation='commit')

        tree = index.write_tree(self.repo)
        head = self.repo.refs.resolve_head()
        parents = [head] if head else []
        merge_head = self.repo.merge.get_merge_head()
        if merge_head and head:
            parents.append(merge_head)

        commit = Commit.create(tree, parents, author, message)
        oid = self.repo.write_object(commit)

        target = self.repo.refs.head_target()
        if target is None:
            self.repo.refs.detach_head(oid)
        else:
            self.repo.refs.update_ref(target, oid)
        if merge_head:
            self.repo.merge.clear_merge_state()

        where = target[len(HEADS_PREFIX):] if target and target.startswith(HEADS_PREFIX) else 'HEAD'
        logger.info(f"Committed {short_oid(oid)} on {where}")
        return oid

    def has_staged_changes(self) -> bool:
        """
        True if the index differs from HEAD.

        While HEAD is unborn any index entry counts as staged.
        """
        index = self.repo.read_index()
        head = self.repo.head_commit()
        if head is None:
            return len(index) > 0
        if index.has_conflicts():
            return True
        return DiffEngine(self.repo).head_tree_map() != index.tree_map()

    def staged_diff(self) -> str:
        """Unified diff text of the index against HEAD (or the empty tree)."""
        engine = DiffEngine(self.repo)
        return engine.format(engine.diff_index_to_head())
