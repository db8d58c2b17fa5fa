"""Object storage.

``ObjectStore`` is the capability set the rest of xgit needs from an object
database. ``LooseObjectStore`` implements it on top of git's loose object
layout (``objects/ab/cdef...``, zlib-compressed ``<type> <size>\\0<payload>``),
so repositories written here are readable by stock git.
"""

import os
import tempfile
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator

from xgit.core.hash import object_header
from xgit.core.objects import GitObject
from xgit.exceptions import CorruptObject, ObjectNotFound
from xgit.utils.log import get_logger

logger = get_logger(__name__)


class ObjectStore(ABC):
    """Content-addressed storage for blobs, trees and commits."""

    @abstractmethod
    def read(self, oid: str) -> GitObject:
        """Return the object stored under oid or raise ObjectNotFound."""

    @abstractmethod
    def write(self, obj: GitObject) -> str:
        """Store obj (idempotently) and return its id."""

    @abstractmethod
    def contains(self, oid: str) -> bool:
        """True if oid is present."""

    @abstractmethod
    def iter_oids(self) -> Iterator[str]:
        """Yield every stored object id."""

    @abstractmethod
    def read_raw(self, oid: str) -> bytes:
        """Return the compressed on-disk representation of oid."""

    @abstractmethod
    def write_raw(self, oid: str, raw: bytes) -> bool:
        """Store a compressed representation copied from another store."""


class LooseObjectStore(ObjectStore):
    """
    Loose-object database rooted at an ``objects/`` directory.

    Objects are stored in subdirectories named by the first 2 characters
    of the id, with the remaining 38 characters as the filename.
    """

    def __init__(self, objects_dir: Path):
        self.objects_dir = Path(objects_dir)

    def object_path(self, oid: str) -> Path:
        return self.objects_dir / oid[:2] / oid[2:]

    def contains(self, oid: str) -> bool:
        return self.object_path(oid).is_file()

    def read(self, oid: str) -> GitObject:
        """
        Read and decode an object.

        Args:
            oid: 40-character object id

        Returns:
            GitObject: Blob, Tree or Commit

        Raises:
            ObjectNotFound: If no loose object exists for oid
            CorruptObject: If the stored data is malformed
        """
        content = self._inflate(self.read_raw(oid), oid)
        null = content.find(b'\0')
        if null < 0:
            raise CorruptObject(f"Object {oid} has no header")
        try:
            obj_type, size = content[:null].decode().split(' ', 1)
            size = int(size)
        except ValueError as e:
            raise CorruptObject(f"Invalid object header in {oid}") from e
        data = content[null + 1:]
        if len(data) != size:
            raise CorruptObject(f"Object {oid} size mismatch: expected {size}, got {len(data)}")
        return GitObject.from_payload(obj_type, data, oid)

    def read_raw(self, oid: str) -> bytes:
        path = self.object_path(oid)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFound(oid) from None

    def write(self, obj: GitObject) -> str:
        """
        Write an object if it is not already stored.

        Args:
            obj: Object to store

        Returns:
            str: Object id
        """
        oid = obj.oid
        if self.contains(oid):
            return oid
        data = obj.serialize()
        self._write_file(oid, zlib.compress(object_header(obj.type, len(data)) + data))
        logger.debug(f"Wrote {obj.type} {oid}")
        return oid

    def write_raw(self, oid: str, raw: bytes) -> bool:
        """
        Store an already-compressed object copied from another store.

        Returns:
            bool: True if the object was new
        """
        if self.contains(oid):
            return False
        self._write_file(oid, raw)
        return True

    def iter_oids(self) -> Iterator[str]:
        if not self.objects_dir.is_dir():
            return
        for subdir in sorted(self.objects_dir.iterdir()):
            if subdir.is_dir() and len(subdir.name) == 2:
                for obj_file in sorted(subdir.iterdir()):
                    if len(obj_file.name) == 38:
                        yield subdir.name + obj_file.name

    def _write_file(self, oid: str, compressed: bytes) -> None:
        path = self.object_path(oid)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file then rename so readers never see a partial object
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix='tmp_obj_')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(compressed)
            os.chmod(tmp, 0o444)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    @staticmethod
    def _inflate(compressed: bytes, oid: str) -> bytes:
        try:
            return zlib.decompress(compressed)
        except zlib.error as e:
            raise CorruptObject(f"Object {oid} is not valid zlib data") from e
