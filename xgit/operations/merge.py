"""Merge engine: up-to-date, fast-forward and three-way merges.

Every merge goes through one decision function, ``analyze``; the engine
dispatches on its outcome. A conflicted three-way merge leaves the
conflicted index and work tree in place (with MERGE_HEAD/MERGE_MSG) for the
user to resolve and commit, or to abort with ``abort_merge``.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from xgit.core.hash import short_oid
from xgit.core.index import Index
from xgit.core.objects import MODE_EXECUTABLE, MODE_FILE, Blob, Commit, flatten_tree
from xgit.core.refs import HEADS_PREFIX
from xgit.exceptions import (
    CheckoutConflict,
    MergeConflict,
    ReferenceNotFound,
    UnsupportedMergeOutcome,
    XgitError,
)
from xgit.operations.checkout import checkout_tree, is_modified, write_blob
from xgit.operations.merge3 import conflict_content, merge_text
from xgit.utils.log import get_logger

logger = get_logger(__name__)

UP_TO_DATE_MESSAGE = 'Already up-to-date'

# Result messages per operation; pull reuses the merge machinery verbatim
MESSAGES = {
    'merge': {
        'fast_forward': 'Fast-forward merge: {oid}',
        'commit': 'Merge commit created: {oid}',
    },
    'pull': {
        'fast_forward': 'Fast-forward pull: {oid}',
        'commit': 'Pull merge commit created: {oid}',
    },
}

TEXT_MODES = (MODE_FILE, MODE_EXECUTABLE)

# {path: (mode, oid)}
TreeMap = Dict[str, Tuple[str, str]]


class MergeAnalysis(enum.Enum):
    UP_TO_DATE = 'up_to_date'
    FAST_FORWARD = 'fast_forward'
    NORMAL = 'normal'


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a successful merge or pull."""
    analysis: MergeAnalysis
    message: str
    oid: Optional[str] = None

    @property
    def is_fast_forward(self) -> bool:
        return self.analysis is MergeAnalysis.FAST_FORWARD

    @property
    def up_to_date(self) -> bool:
        return self.analysis is MergeAnalysis.UP_TO_DATE

    def __str__(self) -> str:
        return self.message


@dataclass
class FileConflict:
    """
    A path the tree merge could not resolve.

    Attributes:
        path: Conflicted path
        reason: 'content', 'modify/delete', 'add/add', 'binary' or
            'file/directory'
        stages: Index entries to record, {stage: (mode, oid)}
        worktree: Content left in the work tree for resolution (None removes)
    """
    path: str
    reason: str
    stages: Dict[int, Tuple[str, str]] = field(default_factory=dict)
    worktree: Optional[bytes] = None
    mode: str = MODE_FILE


class MergeEngine:
    """
    Merges a branch or remote-tracking ref into the current branch.

    Supports:
    - Up-to-date detection (nothing written)
    - Fast-forward merges (branch ref moved, work tree force-updated)
    - Three-way merges with line-level content merging
    - Conflict surfacing with stage 1/2/3 index entries and markers
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo

    @property
    def merge_head_file(self):
        return self.repo.git_dir / 'MERGE_HEAD'

    @property
    def merge_msg_file(self):
        return self.repo.git_dir / 'MERGE_MSG'

    @property
    def merge_mode_file(self):
        return self.repo.git_dir / 'MERGE_MODE'

    # Decision

    def analyze(self, head: str, target: str) -> Tuple[MergeAnalysis, Optional[str]]:
        """
        Decide how target merges into head.

        Args:
            head: Current commit id
            target: Commit id to merge

        Returns:
            Tuple of (analysis, merge base); the base is None when head == target

        Raises:
            UnrelatedHistories: If the commits share no ancestor
        """
        if head == target:
            return MergeAnalysis.UP_TO_DATE, None
        base = self.repo.graph.merge_base(head, target)
        if base == head:
            return MergeAnalysis.FAST_FORWARD, base
        if base == target:
            return MergeAnalysis.UP_TO_DATE, base
        return MergeAnalysis.NORMAL, base

    def merge(self, target: str, message: Optional[str] = None, operation: str = 'merge') -> MergeResult:
        """
        Merge target into the current branch.

        Args:
            target: Branch name, remote-tracking name ('origin/main') or commit id
            message: Merge commit message (default "Merge branch '<target>'")
            operation: 'merge' or 'pull'; selects the result wording

        Returns:
            MergeResult

        Raises:
            DetachedHead: If HEAD is not on a branch
            ReferenceNotFound: If HEAD is unborn or target cannot be resolved
            UnrelatedHistories: If there is no common ancestor
            CheckoutConflict: If local changes stand in the way
            MergeConflict: If the three-way merge conflicts
            MissingIdentity: If a merge commit is needed and no identity is set
        """
        branch = self.repo.branches.current_branch()
        head = self.repo.refs.resolve_head()
        if head is None:
            raise ReferenceNotFound('HEAD', f"Cannot merge into '{branch}': no commits yet")
        target_oid = self.repo.refs.resolve_revision(target)
        if self.is_merge_in_progress():
            raise XgitError(
                "You have not concluded your merge (MERGE_HEAD exists). "
                "Commit the resolution or abort the merge first.",
                {'merge_head': self.get_merge_head()},
            )

        analysis, base = self.analyze(head, target_oid)
        logger.debug(f"Merge analysis for {target}: {analysis.value}")

        if analysis is MergeAnalysis.UP_TO_DATE:
            return MergeResult(analysis, UP_TO_DATE_MESSAGE)
        if analysis is MergeAnalysis.FAST_FORWARD:
            return self._fast_forward(branch, target_oid, operation)
        if analysis is MergeAnalysis.NORMAL:
            message = message or f"Merge branch '{target}'"
            return self._three_way(branch, base, head, target_oid, target, message, operation)
        raise UnsupportedMergeOutcome(f"Unhandled merge analysis: {analysis}")

    # Fast-forward

    def _fast_forward(self, branch: str, target: str, operation: str) -> MergeResult:
        commit = self.repo.read_commit(target)
        with self.repo.refs.lock(HEADS_PREFIX + branch) as lock:
            if not self.repo.is_bare:
                checkout_tree(self.repo, commit.tree, force=True)
            lock.write(target + '\n')
        logger.info(f"Fast-forwarded {branch} to {short_oid(target)}")
        return MergeResult(
            MergeAnalysis.FAST_FORWARD,
            MESSAGES[operation]['fast_forward'].format(oid=target),
            target,
        )

    # Three-way

    def _three_way(
        self,
        branch: str,
        base: str,
        head: str,
        target: str,
        target_name: str,
        message: str,
        operation: str,
    ) -> MergeResult:
        base_files = flatten_tree(self.repo, self.repo.read_commit(base).tree)
        ours_files = flatten_tree(self.repo, self.repo.read_commit(head).tree)
        theirs_files = flatten_tree(self.repo, self.repo.read_commit(target).tree)

        merged, conflicts = self.merge_trees(base_files, ours_files, theirs_files, target_name)
        touched = {p for p in set(merged) | set(ours_files) if merged.get(p) != ours_files.get(p)}
        touched |= {c.path for c in conflicts}

        if not self.repo.is_bare:
            self._ensure_clean(ours_files, sorted(touched))

        if conflicts:
            if not self.repo.is_bare:
                self._write_conflicted_state(merged, conflicts, touched, target, message)
            paths = [c.path for c in conflicts]
            logger.info(f"Merge of {target_name} stopped with {len(paths)} conflict(s)")
            raise MergeConflict(paths, operation=operation)

        # Start from our tree and apply what the merge changed
        index = Index()
        index.read_tree(self.repo, self.repo.read_commit(head).tree)
        for path in touched:
            if path in merged:
                mode, oid = merged[path]
                index.add_entry(path, oid, int(mode, 8))
            else:
                index.remove_entry(path)
        tree = index.write_tree(self.repo)

        commit = Commit.create(tree, [head, target], self.repo.signature(), message)
        oid = self.repo.write_object(commit)

        with self.repo.refs.lock(HEADS_PREFIX + branch) as lock:
            if not self.repo.is_bare:
                checkout_tree(self.repo, tree)
            lock.write(oid + '\n')
        self.clear_merge_state()

        logger.info(f"Created merge commit {short_oid(oid)} on {branch}")
        return MergeResult(MergeAnalysis.NORMAL, MESSAGES[operation]['commit'].format(oid=oid), oid)

    def merge_trees(
        self,
        base: TreeMap,
        ours: TreeMap,
        theirs: TreeMap,
        theirs_label: str = 'theirs',
    ) -> Tuple[TreeMap, List[FileConflict]]:
        """
        Merge flattened trees path by path.

        Args:
            base: Ancestor files
            ours: Our files
            theirs: Their files
            theirs_label: Label for conflict markers

        Returns:
            Tuple of (cleanly merged files, conflicts)
        """
        merged: TreeMap = {}
        conflicts: List[FileConflict] = []

        for path in sorted(set(base) | set(ours) | set(theirs)):
            b, o, t = base.get(path), ours.get(path), theirs.get(path)

            if o == t or b == t:
                if o:
                    merged[path] = o
                continue
            if b == o:
                if t:
                    merged[path] = t
                continue

            # Changed on both sides, differently
            result = self._merge_file(path, b, o, t, theirs_label)
            if isinstance(result, FileConflict):
                conflicts.append(result)
            else:
                merged[path] = result

        conflicts.extend(self._file_directory_conflicts(base, ours, theirs, merged, conflicts))
        return merged, conflicts

    @staticmethod
    def _file_directory_conflicts(base, ours, theirs, merged, conflicts) -> List[FileConflict]:
        """
        Turn every resolved file that is also a directory of another
        resolved path into a conflict. Removes those paths from merged.
        """
        paths = set(merged) | {c.path for c in conflicts}
        directories = {p.rsplit('/', i)[0] for p in paths for i in range(1, p.count('/') + 1)}
        clashes = []
        for path in sorted(directories & set(merged)):
            del merged[path]
            stages = {
                stage: entry
                for stage, entry in ((1, base.get(path)), (2, ours.get(path)), (3, theirs.get(path)))
                if entry
            }
            # The directory side keeps the work tree; the file lives on in the index stages
            clashes.append(FileConflict(path, 'file/directory', stages))
        return clashes

    def _merge_file(self, path, b, o, t, theirs_label):
        stages = {stage: entry for stage, entry in ((1, b), (2, o), (3, t)) if entry}

        if o is None or t is None:
            # One side deleted, the other modified: keep the surviving content
            survivor = o or t
            return FileConflict(path, 'modify/delete', stages, self._blob(survivor[1]), survivor[0])

        if o[0] not in TEXT_MODES or t[0] not in TEXT_MODES:
            return FileConflict(path, 'binary', stages, self._blob(o[1]), o[0])

        ours_data, theirs_data = self._blob(o[1]), self._blob(t[1])
        if b is None:
            return FileConflict(
                path, 'add/add', stages,
                conflict_content(ours_data, theirs_data, 'HEAD', theirs_label), o[0],
            )

        base_data = self._blob(b[1])
        if any(b'\0' in data[:8000] for data in (base_data, ours_data, theirs_data)):
            return FileConflict(path, 'binary', stages, ours_data, o[0])

        # Mode: take whichever side changed it
        mode = o[0] if t[0] == b[0] else t[0]
        if o[0] != b[0] and t[0] != b[0] and o[0] != t[0]:
            mode = o[0]

        text = merge_text(base_data, ours_data, theirs_data, 'HEAD', theirs_label)
        if not text.clean:
            return FileConflict(path, 'content', stages, text.content, mode)
        return mode, self.repo.write_object(Blob(text.content))

    def _blob(self, oid: str) -> bytes:
        return self.repo.read_object(oid).data

    def _ensure_clean(self, ours_files: TreeMap, touched: List[str]) -> None:
        """
        Refuse to merge over uncommitted work.

        The index must match HEAD, and paths the merge rewrites must not
        carry work-tree edits or untracked files.
        """
        index = self.repo.read_index()
        dirty = set(index.conflicted_paths())
        staged = index.tree_map()
        for path in set(staged) | set(ours_files):
            if staged.get(path) != ours_files.get(path):
                dirty.add(path)
        for path in touched:
            entry = index.get_entry(path)
            if entry is not None:
                if is_modified(self.repo, entry):
                    dirty.add(path)
            else:
                # An untracked file in the way
                file_path = self.repo.work_tree / path
                if file_path.is_file() or file_path.is_symlink():
                    dirty.add(path)
        if dirty:
            raise CheckoutConflict(sorted(dirty), operation='merge')

    def _write_conflicted_state(
        self,
        merged: TreeMap,
        conflicts: List[FileConflict],
        touched: set,
        target: str,
        message: str,
    ) -> None:
        conflicted = {c.path: c for c in conflicts}
        previous = self.repo.read_index()
        # Read every blob before the first write
        contents = {p: self._blob(merged[p][1]) for p in touched if p in merged}

        for path in sorted(touched):
            file_path = self.repo.work_tree / path
            if path in conflicted:
                conflict = conflicted[path]
                if conflict.worktree is not None:
                    write_blob(self.repo, path, conflict.worktree, conflict.mode)
            elif path in contents:
                write_blob(self.repo, path, contents[path], merged[path][0])
            elif file_path.is_file() or file_path.is_symlink():
                file_path.unlink()

        index = Index()
        for path, (mode, oid) in merged.items():
            old = previous.get_entry(path)
            if path not in contents and old is not None:
                # Unchanged paths keep their cached stat data
                index.entries[(path, 0)] = old
                continue
            st = (self.repo.work_tree / path).lstat() if path in contents else None
            index.add_entry(path, oid, int(mode, 8), st=st)
        for conflict in conflicts:
            for stage, (mode, oid) in conflict.stages.items():
                index.add_entry(conflict.path, oid, int(mode, 8), stage=stage)
        self.repo.write_index(index)
        self.save_merge_state(target, message, [c.path for c in conflicts])

    # Merge state

    def save_merge_state(self, theirs: str, message: str, paths: List[str]) -> None:
        """
        Record an in-progress merge.

        MERGE_HEAD names the commit being merged; MERGE_MSG carries the
        message the resolving commit should use, with the conflict list.
        """
        self.merge_head_file.write_text(theirs + '\n')
        self.merge_mode_file.write_text('')
        lines = [message.rstrip('\n'), '', '# Conflicts:']
        lines.extend(f'#\t{path}' for path in paths)
        self.merge_msg_file.write_text('\n'.join(lines) + '\n')

    def clear_merge_state(self) -> None:
        for path in (self.merge_head_file, self.merge_mode_file, self.merge_msg_file):
            if path.exists():
                path.unlink()

    def is_merge_in_progress(self) -> bool:
        return self.merge_head_file.exists()

    def get_merge_head(self) -> Optional[str]:
        if self.merge_head_file.exists():
            return self.merge_head_file.read_text().strip()
        return None

    def get_merge_message(self) -> Optional[str]:
        """Saved merge message without the comment lines."""
        if not self.merge_msg_file.exists():
            return None
        lines = [l for l in self.merge_msg_file.read_text().splitlines() if not l.startswith('#')]
        return '\n'.join(lines).strip() or None

    def abort_merge(self) -> bool:
        """
        Abort an in-progress merge.

        Resets the index and work tree to HEAD and clears merge state.

        Returns:
            True if a merge was aborted, False if none was in progress
        """
        if not self.is_merge_in_progress():
            return False
        head = self.repo.refs.resolve_head()
        if head is not None and not self.repo.is_bare:
            checkout_tree(self.repo, self.repo.read_commit(head).tree, force=True)
        self.clear_merge_state()
        logger.info("Merge aborted")
        return True
