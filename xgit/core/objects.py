"""Git objects: blobs, trees and commits in git's canonical encoding."""

import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from xgit.core.hash import hash_object
from xgit.exceptions import CorruptObject

MODE_FILE = '100644'
MODE_EXECUTABLE = '100755'
MODE_SYMLINK = '120000'
MODE_GITLINK = '160000'
MODE_TREE = '40000'


class GitObject(ABC):
    """Base class for all stored objects."""

    type: str = ''

    def __init__(self):
        self._oid: Optional[str] = None

    @abstractmethod
    def serialize(self) -> bytes:
        """
        Serialize the object payload (without the type/size header).

        Returns:
            bytes: Payload as stored by git
        """

    @abstractmethod
    def deserialize(self, data: bytes) -> None:
        """
        Populate the object from its stored payload.

        Args:
            data: Payload without header
        """

    @property
    def oid(self) -> str:
        """
        Object id, computed from the payload on first access.

        Objects read from a store keep the id they were stored under,
        so commits with headers we do not model still hash correctly.
        """
        if self._oid is None:
            self._oid = hash_object(self.type, self.serialize())
        return self._oid

    def _invalidate(self) -> None:
        self._oid = None

    @classmethod
    def from_payload(cls, obj_type: str, data: bytes, oid: Optional[str] = None) -> 'GitObject':
        """
        Build the right object subclass for a stored payload.

        Args:
            obj_type: Type name from the object header
            data: Payload
            oid: Id the payload was stored under, if known

        Returns:
            GitObject: Blob, Tree or Commit

        Raises:
            CorruptObject: For unknown types or undecodable payloads
        """
        classes = {'blob': Blob, 'tree': Tree, 'commit': Commit}
        if obj_type not in classes:
            raise CorruptObject(f"Unknown object type: {obj_type}")
        obj = classes[obj_type]()
        try:
            obj.deserialize(data)
        except (ValueError, IndexError, UnicodeDecodeError) as e:
            raise CorruptObject(f"Cannot decode {obj_type} {oid or ''}: {e}") from e
        obj._oid = oid
        return obj


class Blob(GitObject):
    """Raw file content."""

    type = 'blob'

    def __init__(self, data: Optional[bytes] = None):
        super().__init__()
        self.data = data or b''

    def serialize(self) -> bytes:
        return self.data

    def deserialize(self, data: bytes) -> None:
        self.data = data
        self._invalidate()

    @property
    def is_binary(self) -> bool:
        """Heuristic git also uses: a NUL byte in the first 8000 bytes."""
        return b'\0' in self.data[:8000]

    def __repr__(self) -> str:
        return f"Blob(oid={self.oid[:7]}, size={len(self.data)})"


class TreeEntry:
    """
    A single tree entry.

    Attributes:
        mode: Octal mode string as git stores it ('100644', '40000', ...)
        name: Entry name (one path component)
        oid: Object id of the blob or subtree
    """

    def __init__(self, mode: str, name: str, oid: str):
        self.mode = mode
        self.name = name
        self.oid = oid

    @property
    def is_tree(self) -> bool:
        return self.mode == MODE_TREE

    @property
    def sort_key(self) -> str:
        # git orders subtrees as if their name ended with '/'
        return self.name + '/' if self.is_tree else self.name

    def __lt__(self, other: 'TreeEntry') -> bool:
        return self.sort_key < other.sort_key

    def __eq__(self, other) -> bool:
        if not isinstance(other, TreeEntry):
            return NotImplemented
        return (self.mode, self.name, self.oid) == (other.mode, other.name, other.oid)

    def __repr__(self) -> str:
        return f"TreeEntry({self.mode} {self.oid[:7]} {self.name})"


class Tree(GitObject):
    """A directory listing of blobs and subtrees."""

    type = 'tree'

    def __init__(self, entries: Optional[List[TreeEntry]] = None):
        super().__init__()
        self.entries: List[TreeEntry] = sorted(entries or [])

    def add_entry(self, mode: str, name: str, oid: str) -> None:
        """
        Add or replace an entry.

        Args:
            mode: Octal mode string
            name: Entry name
            oid: Target object id
        """
        self.entries = [e for e in self.entries if e.name != name]
        self.entries.append(TreeEntry(mode, name, oid))
        self.entries.sort()
        self._invalidate()

    def get(self, name: str) -> Optional[TreeEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def serialize(self) -> bytes:
        """
        Encode entries as ``<mode> <name>\\0<20-byte id>`` records.

        Returns:
            bytes: Tree payload
        """
        parts = []
        for entry in sorted(self.entries):
            parts.append(f"{entry.mode} {entry.name}".encode() + b'\0' + bytes.fromhex(entry.oid))
        return b''.join(parts)

    def deserialize(self, data: bytes) -> None:
        entries = []
        pos = 0
        while pos < len(data):
            space = data.index(b' ', pos)
            null = data.index(b'\0', space)
            mode = data[pos:space].decode()
            name = data[space + 1:null].decode()
            oid = data[null + 1:null + 21].hex()
            if len(oid) != 40:
                raise ValueError("truncated tree entry")
            entries.append(TreeEntry(mode, name, oid))
            pos = null + 21
        self.entries = sorted(entries)
        self._invalidate()

    def __repr__(self) -> str:
        return f"Tree(entries={len(self.entries)})"


def local_timezone(timestamp: Optional[int] = None) -> str:
    """Return the local UTC offset of timestamp as git writes it, e.g. '+0200'."""
    offset = time.localtime(timestamp).tm_gmtoff or 0
    sign = '+' if offset >= 0 else '-'
    offset = abs(offset) // 60
    return f"{sign}{offset // 60:02d}{offset % 60:02d}"


class Commit(GitObject):
    """
    A snapshot plus its history.

    Attributes:
        tree: Tree object id
        parents: Parent commit ids (none for a root commit, two for a merge)
        author / committer: 'Name <email>'
        author_time / committer_time: Unix timestamps
        author_timezone / committer_timezone: '+HHMM' offsets
        message: Full commit message
    """

    type = 'commit'

    def __init__(self):
        super().__init__()
        self.tree: str = ''
        self.parents: List[str] = []
        self.author: str = ''
        self.author_time: int = 0
        self.author_timezone: str = '+0000'
        self.committer: str = ''
        self.committer_time: int = 0
        self.committer_timezone: str = '+0000'
        self.message: str = ''

    @property
    def summary(self) -> str:
        """First line of the message."""
        lines = self.message.splitlines()
        return lines[0] if lines else ''

    def serialize(self) -> bytes:
        """
        Encode the commit.

        Format::

            tree <tree-id>
            parent <parent-id>          (zero or more)
            author Name <email> <time> <tz>
            committer Name <email> <time> <tz>

            <message>

        Returns:
            bytes: Commit payload
        """
        lines = [f'tree {self.tree}']
        lines.extend(f'parent {parent}' for parent in self.parents)
        lines.append(f'author {self.author} {self.author_time} {self.author_timezone}')
        lines.append(f'committer {self.committer} {self.committer_time} {self.committer_timezone}')
        lines.append('')
        return ('\n'.join(lines) + '\n' + self.message).encode()

    def deserialize(self, data: bytes) -> None:
        header, _, message = data.decode('utf-8', errors='replace').partition('\n\n')
        self.parents = []
        for line in header.split('\n'):
            # Continuation lines of multi-line headers (gpgsig, mergetag)
            if line.startswith(' '):
                continue
            key, _, value = line.partition(' ')
            if key == 'tree':
                self.tree = value
            elif key == 'parent':
                self.parents.append(value)
            elif key == 'author':
                self.author, self.author_time, self.author_timezone = _parse_signature(value)
            elif key == 'committer':
                self.committer, self.committer_time, self.committer_timezone = _parse_signature(value)
        if not self.tree:
            raise ValueError("commit without tree")
        self.message = message
        self._invalidate()

    @classmethod
    def create(
        cls,
        tree: str,
        parents: List[str],
        author: str,
        message: str,
        committer: Optional[str] = None,
        timestamp: Optional[int] = None,
        timezone: Optional[str] = None,
    ) -> 'Commit':
        """
        Create a new commit object.

        Args:
            tree: Tree object id
            parents: Parent commit ids, in order
            author: 'Name <email>'
            message: Commit message (a trailing newline is added if missing)
            committer: Defaults to author
            timestamp: Unix timestamp (defaults to now)
            timezone: UTC offset (defaults to the local zone)

        Returns:
            Commit: New, unsaved commit
        """
        if timestamp is None:
            timestamp = int(time.time())
        if timezone is None:
            timezone = local_timezone(timestamp)
        if message and not message.endswith('\n'):
            message += '\n'

        commit = cls()
        commit.tree = tree
        commit.parents = list(parents)
        commit.author = author
        commit.committer = committer or author
        commit.author_time = commit.committer_time = timestamp
        commit.author_timezone = commit.committer_timezone = timezone
        commit.message = message
        return commit

    def __repr__(self) -> str:
        return f"Commit(oid={self.oid[:7]}, parents={len(self.parents)}, msg='{self.summary[:50]}')"


def _parse_signature(value: str) -> Tuple[str, int, str]:
    ident, timestamp, timezone = value.rsplit(' ', 2)
    return ident, int(timestamp), timezone


def flatten_tree(store, tree_oid: Optional[str], prefix: str = '') -> Dict[str, Tuple[str, str]]:
    """
    Flatten a tree into ``{path: (mode, blob_oid)}``.

    Args:
        store: Anything with ``read_object``
        tree_oid: Root tree id (None gives an empty mapping)
        prefix: Path prefix for recursion

    Returns:
        Dict of slash-separated paths to (mode, oid)
    """
    files: Dict[str, Tuple[str, str]] = {}
    if not tree_oid:
        return files
    tree = store.read_object(tree_oid)
    for entry in tree.entries:
        path = f"{prefix}{entry.name}"
        if entry.is_tree:
            files.update(flatten_tree(store, entry.oid, f"{path}/"))
        else:
            files[path] = (entry.mode, entry.oid)
    return files
