"""Reference management: HEAD, branches and remote-tracking refs."""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from xgit.core.hash import is_oid
from xgit.core.lockfile import LockFile, write_locked
from xgit.exceptions import InvalidReferenceName, ReferenceNotFound
from xgit.utils.log import get_logger

logger = get_logger(__name__)

HEADS_PREFIX = 'refs/heads/'
REMOTES_PREFIX = 'refs/remotes/'
SYMREF_PREFIX = 'ref: '

# Symbolic refs are followed at most this many times
MAX_SYMREF_DEPTH = 5

_BAD_REF_CHARS = re.compile(r'[\x00-\x20\x7f~^:?*\[\\]')


def check_ref_name(name: str) -> str:
    """
    Validate a ref name (or a branch name) against git's naming rules.

    Args:
        name: Candidate name, e.g. 'feature/login' or 'refs/heads/main'

    Returns:
        The name unchanged

    Raises:
        InvalidReferenceName: If git would refuse the name
    """
    if (
        not name
        or name == '@'
        or name.startswith(('-', '/'))
        or name.endswith(('/', '.', '.lock'))
        or '..' in name
        or '//' in name
        or '@{' in name
        or _BAD_REF_CHARS.search(name)
        or any(part.startswith('.') or part.endswith('.lock') for part in name.split('/'))
    ):
        raise InvalidReferenceName(name)
    return name


class RefManager:
    """
    Reads and writes references in a git directory.

    Handles:
    - Symbolic references (HEAD pointing to a branch, possibly unborn)
    - Direct references (branch tips, detached HEAD)
    - Loose refs plus the ``packed-refs`` file
    - Locked updates through ``<ref>.lock``
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo
        self.git_dir: Path = repo.git_dir
        self.head_file = self.git_dir / 'HEAD'
        self.packed_refs_file = self.git_dir / 'packed-refs'

    # Reading

    def _ref_path(self, ref_name: str) -> Path:
        return self.git_dir / ref_name

    def _read_loose(self, ref_name: str) -> Optional[str]:
        path = self._ref_path(ref_name)
        if not path.is_file():
            return None
        return path.read_text().strip()

    def read_packed_refs(self) -> Dict[str, str]:
        """
        Parse ``packed-refs``.

        Returns:
            Dict of full ref name to object id
        """
        refs: Dict[str, str] = {}
        if not self.packed_refs_file.is_file():
            return refs
        for line in self.packed_refs_file.read_text().splitlines():
            # Comments and peeled tag lines
            if not line or line.startswith(('#', '^')):
                continue
            oid, _, name = line.partition(' ')
            refs[name.strip()] = oid
        return refs

    def read_raw(self, ref_name: str) -> Optional[str]:
        """
        Read a ref without following it.

        Returns:
            'ref: <target>' for symbolic refs, an object id, or None
        """
        value = self._read_loose(ref_name)
        if value is not None:
            return value
        return self.read_packed_refs().get(ref_name)

    def resolve(self, ref_name: str) -> Optional[str]:
        """
        Resolve a full ref name to an object id, following symbolic refs.

        Args:
            ref_name: 'HEAD', 'refs/heads/main', ...

        Returns:
            Object id, or None if the ref (or its symbolic target) is absent
        """
        for _ in range(MAX_SYMREF_DEPTH):
            value = self.read_raw(ref_name)
            if value is None:
                return None
            if not value.startswith(SYMREF_PREFIX):
                return value
            ref_name = value[len(SYMREF_PREFIX):].strip()
        logger.warning(f"Symbolic ref loop while resolving {ref_name}")
        return None

    def exists(self, ref_name: str) -> bool:
        return self.read_raw(ref_name) is not None

    # HEAD

    def head_target(self) -> Optional[str]:
        """
        The ref HEAD points at symbolically.

        Returns:
            Full ref name like 'refs/heads/main', or None when detached
        """
        value = self._read_loose('HEAD')
        if value and value.startswith(SYMREF_PREFIX):
            return value[len(SYMREF_PREFIX):].strip()
        return None

    def resolve_head(self) -> Optional[str]:
        """Commit id HEAD points at, or None while unborn."""
        return self.resolve('HEAD')

    def is_detached_head(self) -> bool:
        value = self._read_loose('HEAD')
        return value is not None and not value.startswith(SYMREF_PREFIX)

    def is_unborn(self) -> bool:
        """True if HEAD names a branch that has no commit yet."""
        return self.head_target() is not None and self.resolve_head() is None

    def get_current_branch(self) -> Optional[str]:
        """
        Get the current branch name.

        Returns:
            Branch name (possibly unborn), or None if HEAD is detached
        """
        target = self.head_target()
        if target and target.startswith(HEADS_PREFIX):
            return target[len(HEADS_PREFIX):]
        return None

    def set_head(self, branch: str) -> None:
        """Point HEAD symbolically at a branch, which need not exist yet."""
        ref_name = branch if branch.startswith('refs/') else HEADS_PREFIX + branch
        check_ref_name(ref_name)
        write_locked(self.head_file, f'{SYMREF_PREFIX}{ref_name}\n')
        logger.debug(f"HEAD -> {ref_name}")

    def detach_head(self, oid: str) -> None:
        write_locked(self.head_file, oid + '\n')

    # Writing

    def update_ref(self, ref_name: str, oid: str) -> None:
        """
        Point a ref at an object id under the ref's lock file.

        Args:
            ref_name: Full ref name ('refs/heads/main')
            oid: Target object id

        Raises:
            InvalidReferenceName: For malformed names or ids
            LockError: If another writer holds the ref
        """
        check_ref_name(ref_name)
        if not is_oid(oid):
            raise InvalidReferenceName(oid)
        write_locked(self._ref_path(ref_name), oid + '\n')
        logger.debug(f"Updated {ref_name} to {oid}")

    def lock(self, ref_name: str) -> LockFile:
        """
        Lock a ref for an update that must wait on other work.

        Write ``'<oid>\\n'`` into the returned lock inside a ``with`` block;
        the ref only changes if the block exits cleanly.
        """
        check_ref_name(ref_name)
        return LockFile(self._ref_path(ref_name))

    def delete_ref(self, ref_name: str) -> bool:
        """
        Delete a ref from both loose storage and ``packed-refs``.

        Args:
            ref_name: Full ref name

        Returns:
            True if anything was removed
        """
        removed = False
        path = self._ref_path(ref_name)
        if path.is_file():
            lock = LockFile(path).acquire()
            try:
                path.unlink()
            finally:
                lock.rollback()
            removed = True
            self._prune_empty_dirs(path.parent)

        packed = self.read_packed_refs()
        if ref_name in packed:
            self._remove_packed(ref_name)
            removed = True

        if removed:
            logger.debug(f"Deleted {ref_name}")
        return removed

    def _remove_packed(self, ref_name: str) -> None:
        lines = self.packed_refs_file.read_text().splitlines(keepends=True)
        kept = []
        skip_peeled = False
        for line in lines:
            if line.startswith('^'):
                if not skip_peeled:
                    kept.append(line)
                continue
            skip_peeled = line.rstrip('\n').endswith(' ' + ref_name)
            if not skip_peeled:
                kept.append(line)
        write_locked(self.packed_refs_file, ''.join(kept))

    def _prune_empty_dirs(self, directory: Path) -> None:
        refs_root = self.git_dir / 'refs'
        while directory != refs_root and refs_root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                return
            directory = directory.parent

    # Listing

    def list_refs(self, prefix: str) -> Dict[str, str]:
        """
        All direct refs under a namespace, loose refs winning over packed ones.

        Args:
            prefix: Namespace such as 'refs/heads/'

        Returns:
            Dict of full ref name to object id
        """
        refs = {name: oid for name, oid in self.read_packed_refs().items() if name.startswith(prefix)}
        root = self.git_dir / prefix
        if root.is_dir():
            for path in root.rglob('*'):
                if not path.is_file() or path.name.endswith('.lock'):
                    continue
                value = path.read_text().strip()
                if value.startswith(SYMREF_PREFIX):
                    # e.g. refs/remotes/origin/HEAD
                    continue
                refs[prefix + path.relative_to(root).as_posix()] = value
        return dict(sorted(refs.items()))

    def list_branches(self) -> List[Tuple[str, str]]:
        """
        List local branches.

        Returns:
            Sorted list of (branch_name, commit_id)
        """
        return [(name[len(HEADS_PREFIX):], oid) for name, oid in self.list_refs(HEADS_PREFIX).items()]

    def list_remote_branches(self, remote: Optional[str] = None) -> List[Tuple[str, str]]:
        """
        List remote-tracking branches.

        Args:
            remote: Restrict to one remote

        Returns:
            Sorted list of ('<remote>/<branch>', commit_id)
        """
        prefix = REMOTES_PREFIX + (f'{remote}/' if remote else '')
        return [(name[len(REMOTES_PREFIX):], oid) for name, oid in self.list_refs(prefix).items()]

    # Revision lookup

    def expand(self, name: str) -> Optional[str]:
        """
        Find the full ref name a short name refers to.

        Tries the name as given, then as a branch, then as a
        remote-tracking branch, like git's ref disambiguation.

        Returns:
            Full ref name or None
        """
        candidates = [name] if name == 'HEAD' or name.startswith('refs/') else []
        candidates += [HEADS_PREFIX + name, REMOTES_PREFIX + name, f'refs/tags/{name}']
        for candidate in candidates:
            if self.exists(candidate):
                return candidate
        return None

    def resolve_revision(self, revision: str) -> str:
        """
        Resolve a branch name, remote-tracking name, full ref or object id.

        Args:
            revision: e.g. 'feature', 'origin/main', 'HEAD', '3f2a...'

        Returns:
            Commit id

        Raises:
            ReferenceNotFound: If nothing matches
        """
        ref_name = self.expand(revision)
        if ref_name is not None:
            oid = self.resolve(ref_name)
            if oid:
                return oid
        elif is_oid(revision) and self.repo.object_exists(revision):
            return revision
        raise ReferenceNotFound(revision)
