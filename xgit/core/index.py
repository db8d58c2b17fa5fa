"""Index (staging area) in git's DIRC format."""

import hashlib
import os
import stat
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from xgit.core.lockfile import LockFile
from xgit.core.objects import MODE_TREE, Blob, Tree, flatten_tree
from xgit.exceptions import CorruptObject, MergeConflict
from xgit.utils.log import get_logger

logger = get_logger(__name__)

SIGNATURE = b'DIRC'
ENTRY_FORMAT = '>IIIIIIIIII20sH'
ENTRY_SIZE = struct.calcsize(ENTRY_FORMAT)

FLAG_EXTENDED = 0x4000
FLAG_STAGE_SHIFT = 12
NAME_MASK = 0xFFF

MODE_REGULAR = 0o100644
MODE_EXEC = 0o100755
MODE_LINK = 0o120000
MODE_GITLINK = 0o160000

_U32 = 0xFFFFFFFF


def normalize_mode(st_mode: int) -> int:
    """Map a filesystem mode to one of the modes git records."""
    if stat.S_ISLNK(st_mode):
        return MODE_LINK
    if stat.S_ISDIR(st_mode):
        return MODE_GITLINK
    return MODE_EXEC if st_mode & 0o111 else MODE_REGULAR


@dataclass
class IndexEntry:
    """
    A single index entry.

    Stage 0 is a normal entry; stages 1, 2 and 3 hold the base, ours and
    theirs versions of a path left unmerged by a conflicted merge.
    """
    ctime: int
    ctime_ns: int
    mtime: int
    mtime_ns: int
    dev: int
    ino: int
    mode: int
    uid: int
    gid: int
    size: int
    sha1: str
    path: str
    stage: int = 0

    @property
    def flags(self) -> int:
        return (self.stage << FLAG_STAGE_SHIFT) | min(len(self.path.encode()), NAME_MASK)

    @property
    def tree_mode(self) -> str:
        return format(self.mode, 'o')

    def stat_matches(self, st: os.stat_result) -> bool:
        """True if the file's stat data is unchanged since it was staged."""
        return (
            self.size == (st.st_size & _U32)
            and self.mtime == (int(st.st_mtime) & _U32)
            and self.mtime_ns == st.st_mtime_ns % 1_000_000_000
            and self.mode == normalize_mode(st.st_mode)
        )

    def __repr__(self) -> str:
        return f"IndexEntry({self.mode:o} {self.sha1[:7]} {self.stage} {self.path})"


class Index:
    """
    The staging area.

    Entries are keyed by ``(path, stage)``. The index is read from and
    written to ``.git/index``; writes take ``index.lock``.
    """

    def __init__(self):
        self.entries: Dict[Tuple[str, int], IndexEntry] = {}
        self.version: int = 2

    def add_entry(
        self,
        path: str,
        sha1: str,
        mode: int = MODE_REGULAR,
        size: int = 0,
        stage: int = 0,
        st: Optional[os.stat_result] = None,
    ) -> IndexEntry:
        """
        Add or replace an entry.

        Adding a stage-0 entry resolves any conflict recorded for the path.

        Args:
            path: Slash-separated path relative to the work tree
            sha1: Blob id
            mode: Git file mode
            size: File size in bytes
            stage: 0, or 1-3 for unmerged entries
            st: Stat result to record for change detection
        """
        if stage == 0:
            for conflict_stage in (1, 2, 3):
                self.entries.pop((path, conflict_stage), None)
        else:
            self.entries.pop((path, 0), None)

        entry = IndexEntry(
            ctime=0, ctime_ns=0, mtime=0, mtime_ns=0, dev=0, ino=0,
            mode=mode, uid=0, gid=0, size=size & _U32, sha1=sha1, path=path, stage=stage,
        )
        if st is not None:
            entry.ctime = int(st.st_ctime) & _U32
            entry.ctime_ns = st.st_ctime_ns % 1_000_000_000
            entry.mtime = int(st.st_mtime) & _U32
            entry.mtime_ns = st.st_mtime_ns % 1_000_000_000
            entry.dev = st.st_dev & _U32
            entry.ino = st.st_ino & _U32
            entry.uid = st.st_uid & _U32
            entry.gid = st.st_gid & _U32
            entry.size = st.st_size & _U32
        self.entries[(path, stage)] = entry
        return entry

    def add_file(self, repo, rel_path: str) -> str:
        """
        Hash a work-tree file into the store and stage it.

        Args:
            repo: Repository with a work tree
            rel_path: Slash-separated path relative to the work tree

        Returns:
            str: Blob id of the staged content
        """
        file_path = repo.work_tree / rel_path
        st = file_path.lstat()
        if stat.S_ISLNK(st.st_mode):
            data = os.readlink(file_path).encode()
        else:
            data = file_path.read_bytes()
        oid = repo.write_object(Blob(data))
        self.add_entry(rel_path, oid, normalize_mode(st.st_mode), len(data), st=st)
        return oid

    def remove_entry(self, path: str) -> bool:
        """Remove every stage of a path. Returns True if anything was removed."""
        keys = [key for key in self.entries if key[0] == path]
        for key in keys:
            del self.entries[key]
        return bool(keys)

    def get_entry(self, path: str, stage: int = 0) -> Optional[IndexEntry]:
        return self.entries.get((path, stage))

    def paths(self) -> List[str]:
        return sorted({path for path, _ in self.entries})

    def stage_entries(self, stage: int = 0) -> Iterator[IndexEntry]:
        for key in sorted(self.entries):
            if key[1] == stage:
                yield self.entries[key]

    def conflicted_paths(self) -> List[str]:
        return sorted({path for path, stage in self.entries if stage > 0})

    def has_conflicts(self) -> bool:
        return any(stage > 0 for _, stage in self.entries)

    def clear(self) -> None:
        self.entries.clear()

    def tree_map(self) -> Dict[str, Tuple[str, str]]:
        """Stage-0 entries as ``{path: (mode, oid)}``, like ``flatten_tree``."""
        return {e.path: (e.tree_mode, e.sha1) for e in self.stage_entries(0)}

    # Trees

    def read_tree(self, repo, tree_oid: Optional[str]) -> None:
        """
        Replace the index contents with a tree's files.

        Stat data is left zero, so every path reads as "possibly modified"
        until it is re-staged or refreshed by checkout.
        """
        self.clear()
        for path, (mode, oid) in flatten_tree(repo, tree_oid).items():
            self.add_entry(path, oid, int(mode, 8))

    def write_tree(self, repo) -> str:
        """
        Write stage-0 entries as nested tree objects.

        Args:
            repo: Repository to store the trees in

        Returns:
            str: Root tree id

        Raises:
            MergeConflict: If unmerged entries remain
        """
        if self.has_conflicts():
            raise MergeConflict(self.conflicted_paths(), operation='write-tree')

        # Directory path -> {name: (mode, oid)}; '' is the root
        dirs: Dict[str, Dict[str, Tuple[str, str]]] = {'': {}}
        for entry in self.stage_entries(0):
            parent, _, name = entry.path.rpartition('/')
            dirs.setdefault(parent, {})[name] = (entry.tree_mode, entry.sha1)
            # Register every ancestor directory
            while parent:
                grandparent = parent.rpartition('/')[0]
                dirs.setdefault(grandparent, {})
                parent = grandparent

        # Deepest directories first so subtree ids exist before their parents
        for directory in sorted(dirs, key=lambda d: d.count('/') + (1 if d else 0), reverse=True):
            tree = Tree()
            for name, (mode, oid) in dirs[directory].items():
                tree.add_entry(mode, name, oid)
            oid = repo.write_object(tree)
            if directory:
                parent, _, name = directory.rpartition('/')
                dirs[parent][name] = (MODE_TREE, oid)
            else:
                return oid
        raise AssertionError('root tree was not written')

    # Serialization

    def write(self, index_path: Path) -> None:
        """
        Write the index in DIRC version 2 format under ``index.lock``.

        Format:
        - Header: 'DIRC' + version + entry count
        - Entries sorted by (path, stage), each padded to 8 bytes
        - SHA-1 of everything before it
        """
        content = bytearray(SIGNATURE)
        content.extend(struct.pack('>II', 2, len(self.entries)))

        for key in sorted(self.entries, key=lambda k: (k[0].encode(), k[1])):
            entry = self.entries[key]
            name = entry.path.encode()
            content.extend(struct.pack(
                ENTRY_FORMAT,
                entry.ctime, entry.ctime_ns, entry.mtime, entry.mtime_ns,
                entry.dev, entry.ino, entry.mode, entry.uid, entry.gid, entry.size,
                bytes.fromhex(entry.sha1), entry.flags,
            ))
            content.extend(name)
            entry_len = ENTRY_SIZE + len(name)
            content.extend(b'\0' * (8 - entry_len % 8))

        content.extend(hashlib.sha1(content).digest())
        with LockFile(index_path) as lock:
            lock.write(bytes(content))
        self.version = 2

    def read(self, index_path: Path) -> None:
        """
        Load the index from disk; a missing file gives an empty index.

        Versions 2 and 3 are supported. Extensions are skipped.

        Raises:
            CorruptObject: On a bad signature, checksum or version
        """
        self.entries.clear()
        index_path = Path(index_path)
        if not index_path.exists():
            return

        data = index_path.read_bytes()
        if len(data) < 32 or data[:4] != SIGNATURE:
            raise CorruptObject(f"Invalid index file: {index_path}")
        if hashlib.sha1(data[:-20]).digest() != data[-20:]:
            raise CorruptObject("Index checksum mismatch")

        version, count = struct.unpack('>II', data[4:12])
        if version not in (2, 3):
            raise CorruptObject(f"Unsupported index version {version}")
        self.version = version

        offset = 12
        for _ in range(count):
            fields = struct.unpack(ENTRY_FORMAT, data[offset:offset + ENTRY_SIZE])
            flags = fields[11]
            header_len = ENTRY_SIZE
            if flags & FLAG_EXTENDED:
                header_len += 2
            name_start = offset + header_len
            name_end = data.index(b'\0', name_start)
            path = data[name_start:name_end].decode('utf-8', errors='surrogateescape')
            entry_len = header_len + (name_end - name_start)
            offset += entry_len + (8 - entry_len % 8)

            stage = (flags >> FLAG_STAGE_SHIFT) & 0x3
            self.entries[(path, stage)] = IndexEntry(
                ctime=fields[0], ctime_ns=fields[1], mtime=fields[2], mtime_ns=fields[3],
                dev=fields[4], ino=fields[5], mode=fields[6], uid=fields[7], gid=fields[8],
                size=fields[9], sha1=fields[10].hex(), path=path, stage=stage,
            )

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Index(entries={len(self.entries)})"
