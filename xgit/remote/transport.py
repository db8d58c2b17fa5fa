"""Object transfer between repositories on the local filesystem.

Remotes are local paths or ``file://`` URLs. Other URL schemes are
recognized only to be refused with ``UnsupportedProtocol``.
"""

import re
from pathlib import Path
from typing import Dict, Iterable, Optional, Set, Tuple

from xgit.core.objects import Commit, Tree
from xgit.core.refs import HEADS_PREFIX
from xgit.exceptions import UnsupportedProtocol
from xgit.utils.log import get_logger

logger = get_logger(__name__)

_SCHEME_RE = re.compile(r'^([a-zA-Z][a-zA-Z0-9+.-]*)://')
_SCP_RE = re.compile(r'^[^/:]+@[^/:]+:')


def parse_url(url: str) -> Tuple[str, str]:
    """
    Split a remote URL into protocol and location.

    Examples:
        file:///path/to/repo -> ('file', '/path/to/repo')
        /path/to/repo -> ('file', '/path/to/repo')
        https://github.com/user/repo.git -> ('https', 'github.com/user/repo.git')
        git@github.com:user/repo.git -> ('ssh', 'git@github.com:user/repo.git')
    """
    match = _SCHEME_RE.match(url)
    if match:
        return match.group(1).lower(), url[match.end():]
    if _SCP_RE.match(url):
        return 'ssh', url
    return 'file', url


class LocalTransport:
    """A remote repository reachable through the filesystem."""

    def __init__(self, url: str, base_dir: Optional[Path] = None):
        """
        Args:
            url: Remote URL (local path or file://)
            base_dir: Directory relative paths are resolved against

        Raises:
            UnsupportedProtocol: For any non-local scheme
            NotARepository: If nothing is there
        """
        from xgit.core.repository import Repository

        protocol, location = parse_url(url)
        if protocol != 'file':
            raise UnsupportedProtocol(url, protocol)
        path = Path(location).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        self.url = url
        self.repo = Repository.open(path)

    def list_heads(self) -> Dict[str, str]:
        """Remote branches as {full ref name: commit id}."""
        return self.repo.refs.list_refs(HEADS_PREFIX)


def reachable_objects(source, tips: Iterable[str], have) -> Set[str]:
    """
    Objects reachable from tips that the receiving side may be missing.

    The walk stops at commits the receiver already has, whose history is
    then assumed complete.

    Args:
        source: Repository the objects are read from
        tips: Commit ids to send
        have: Callable telling whether the receiver has an object id

    Returns:
        Set of object ids to offer
    """
    wanted: Set[str] = set()
    seen_trees: Set[str] = set()
    stack = [oid for oid in tips if not have(oid)]
    while stack:
        oid = stack.pop()
        if oid in wanted:
            continue
        wanted.add(oid)
        commit = source.read_object(oid)
        if not isinstance(commit, Commit):
            continue
        stack.extend(p for p in commit.parents if p not in wanted and not have(p))
        _collect_tree(source, commit.tree, wanted, seen_trees)
    return wanted


def _collect_tree(source, tree_oid: str, wanted: Set[str], seen: Set[str]) -> None:
    if tree_oid in seen:
        return
    seen.add(tree_oid)
    wanted.add(tree_oid)
    tree = source.read_object(tree_oid)
    if not isinstance(tree, Tree):
        return
    for entry in tree.entries:
        if entry.is_tree:
            _collect_tree(source, entry.oid, wanted, seen)
        elif entry.mode != '160000':
            wanted.add(entry.oid)


def copy_objects(source, dest, tips: Iterable[str]) -> Tuple[int, int]:
    """
    Copy every object dest is missing from the history of tips.

    Objects are copied in their compressed form, unchanged.

    Returns:
        Tuple of (objects received, objects considered)
    """
    wanted = reachable_objects(source, tips, dest.object_exists)
    received = 0
    for oid in sorted(wanted):
        if dest.store.write_raw(oid, source.store.read_raw(oid)):
            received += 1
    logger.debug(f"Copied {received}/{len(wanted)} objects from {source.git_dir} to {dest.git_dir}")
    return received, len(wanted)
