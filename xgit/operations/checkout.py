"""Work-tree materialization.

Switching the work tree to a tree happens in stages: plan the changes and
check for local edits, read every blob the target needs, and only then
touch files. A failure in the first two stages leaves the work tree and
index untouched.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from xgit.core.hash import hash_object
from xgit.core.index import Index, IndexEntry, normalize_mode
from xgit.core.objects import MODE_EXECUTABLE, MODE_GITLINK, MODE_SYMLINK, flatten_tree
from xgit.exceptions import CheckoutConflict
from xgit.utils.log import get_logger

logger = get_logger(__name__)


def read_worktree_blob(path: Path) -> Optional[Tuple[str, str]]:
    """
    Hash a work-tree file the way it would be staged.

    Returns:
        (mode, blob_oid) or None if nothing is there
    """
    try:
        st = path.lstat()
    except FileNotFoundError:
        return None
    if os.path.islink(path):
        data = os.readlink(path).encode()
    elif path.is_file():
        data = path.read_bytes()
    else:
        return None
    return format(normalize_mode(st.st_mode), 'o'), hash_object('blob', data)


def is_modified(repo, entry: IndexEntry) -> bool:
    """True if the work-tree file differs from its index entry."""
    path = repo.work_tree / entry.path
    try:
        st = path.lstat()
    except FileNotFoundError:
        return True
    if entry.stat_matches(st):
        return False
    current = read_worktree_blob(path)
    return current != (entry.tree_mode, entry.sha1)


def _head_tree(repo) -> Optional[str]:
    head = repo.head_commit()
    return repo.read_commit(head).tree if head else None


def checkout_tree(repo, tree_oid: Optional[str], force: bool = False) -> List[str]:
    """
    Make the work tree and index match a tree.

    Without force the switch is planned from the tree HEAD points at to
    the target. Paths the switch does not change keep whatever is staged
    for them, and a staged change on a path the switch would rewrite is a
    conflict.

    Args:
        repo: Non-bare repository
        tree_oid: Target tree (None for an empty tree)
        force: Overwrite local modifications instead of refusing; the plan
            then starts from the index

    Returns:
        List of paths written or removed

    Raises:
        CheckoutConflict: If local changes would be lost (nothing is changed)
    """
    index = repo.read_index()
    staged = index.tree_map()
    target = flatten_tree(repo, tree_oid)
    base = staged if force else flatten_tree(repo, _head_tree(repo))

    to_write = sorted(p for p in target if base.get(p) != target[p])
    to_remove = sorted(p for p in base if p not in target)
    # Unmerged paths are always rewritten from the target
    for path in index.conflicted_paths():
        if path in target and path not in to_write:
            to_write.append(path)
        elif path not in target and path not in to_remove:
            to_remove.append(path)

    # Staged entries on paths the switch leaves alone; None marks a staged removal
    carried: Dict[str, Optional[IndexEntry]] = {}
    if not force:
        switched = set(to_write) | set(to_remove)
        overwritten = []
        for path in sorted(set(base) | set(staged)):
            if staged.get(path) == base.get(path):
                continue
            if path not in switched:
                carried[path] = index.get_entry(path)
            elif staged.get(path) != target.get(path):
                overwritten.append(path)
        if overwritten:
            raise CheckoutConflict(overwritten)
        _check_local_changes(repo, index, target, to_write + to_remove)

    # Read everything up front so a missing object aborts before any write
    blobs: Dict[str, bytes] = {}
    for path in to_write:
        mode, oid = target[path]
        if mode != MODE_GITLINK:
            blobs[path] = repo.read_object(oid).data

    if force:
        # Paths unchanged in the index may still carry local edits
        for path, (mode, oid) in target.items():
            if path in blobs or mode == MODE_GITLINK:
                continue
            entry = index.get_entry(path)
            if entry is None or is_modified(repo, entry):
                blobs[path] = repo.read_object(oid).data
                to_write.append(path)

    for path in to_remove:
        _remove_file(repo.work_tree, path)

    new_index = Index()
    for path, (mode, oid) in target.items():
        if path in carried:
            continue
        file_path = repo.work_tree / path
        if path in blobs:
            _write_file(file_path, mode, blobs[path])
        if mode == MODE_GITLINK:
            new_index.add_entry(path, oid, int(mode, 8))
            continue
        old = index.get_entry(path)
        if path not in blobs and old is not None and old.sha1 == oid:
            # Untouched file: keep its cached stat data
            new_index.entries[(path, 0)] = old
        else:
            new_index.add_entry(path, oid, int(mode, 8), st=file_path.lstat())
    for path, entry in carried.items():
        if entry is not None:
            new_index.entries[(path, 0)] = entry
    repo.write_index(new_index)

    changed = sorted(set(to_write) | set(to_remove))
    logger.debug(f"Checked out tree {tree_oid}: {len(changed)} path(s) updated, {len(carried)} staged path(s) kept")
    return changed


def _check_local_changes(repo, index: Index, target: Dict[str, Tuple[str, str]], paths: List[str]) -> None:
    conflicts = []
    for path in paths:
        entry = index.get_entry(path)
        file_path = repo.work_tree / path
        if entry is not None:
            if is_modified(repo, entry) and read_worktree_blob(file_path) != target.get(path):
                conflicts.append(path)
        elif not index.get_entry(path, 2) and file_path.exists():
            # An untracked file in the way of a new one
            if read_worktree_blob(file_path) != target.get(path):
                conflicts.append(path)
    if conflicts:
        raise CheckoutConflict(sorted(conflicts))


def _write_file(file_path: Path, mode: str, data: bytes) -> None:
    if file_path.is_dir() and not file_path.is_symlink():
        shutil.rmtree(file_path)
    for parent in reversed(file_path.parents):
        # A file where a directory must go
        if parent.exists() and not parent.is_dir():
            parent.unlink()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if file_path.is_symlink() or file_path.exists():
        file_path.unlink()

    if mode == MODE_SYMLINK:
        os.symlink(data.decode(), file_path)
        return
    file_path.write_bytes(data)
    os.chmod(file_path, 0o755 if mode == MODE_EXECUTABLE else 0o644)


def _remove_file(work_tree: Path, path: str) -> None:
    file_path = work_tree / path
    if file_path.is_symlink() or file_path.is_file():
        file_path.unlink()
    # Drop directories the removal left empty
    parent = file_path.parent
    while parent != work_tree and work_tree in parent.parents:
        try:
            parent.rmdir()
        except OSError:
            break
        parent = parent.parent


def write_blob(repo, path: str, data: bytes, mode: str = '100644') -> None:
    """Write content to a work-tree path (used for conflict files)."""
    _write_file(repo.work_tree / path, mode, data)
