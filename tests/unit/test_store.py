"""Tests for the loose object store."""

import zlib

import pytest

from xgit.core.objects import Blob, Commit, Tree
from xgit.core.store import LooseObjectStore
from xgit.exceptions import CorruptObject, ObjectNotFound


@pytest.fixture
def store(tmp_path):
    return LooseObjectStore(tmp_path / 'objects')


def test_write_uses_fanout_layout(store, tmp_path):
    """Test objects land at objects/<2 hex>/<38 hex> as zlib data."""
    oid = store.write(Blob(b'hello world\n'))
    path = tmp_path / 'objects' / oid[:2] / oid[2:]
    assert path.is_file()
    assert zlib.decompress(path.read_bytes()) == b'blob 12\0hello world\n'


def test_read_back_each_type(store):
    blob_oid = store.write(Blob(b'data'))
    tree = Tree()
    tree.add_entry('100644', 'f', blob_oid)
    tree_oid = store.write(tree)
    commit_oid = store.write(Commit.create(tree_oid, [], 'A <a@x>', 'msg', timestamp=1, timezone='+0000'))

    assert store.read(blob_oid).data == b'data'
    assert store.read(tree_oid).get('f').oid == blob_oid
    assert store.read(commit_oid).tree == tree_oid


def test_write_is_idempotent(store):
    """Test writing an existing object is a no-op returning the same id."""
    first = store.write(Blob(b'same'))
    second = store.write(Blob(b'same'))
    assert first == second
    assert list(store.iter_oids()) == [first]


def test_missing_object(store):
    with pytest.raises(ObjectNotFound):
        store.read('0' * 40)
    assert not store.contains('0' * 40)


def test_corrupt_object(store):
    """Test non-zlib content is reported as corrupt."""
    oid = 'ab' + 'c' * 38
    store.object_path(oid).parent.mkdir(parents=True)
    store.object_path(oid).write_bytes(b'not zlib')
    with pytest.raises(CorruptObject):
        store.read(oid)


def test_size_mismatch_is_corrupt(store):
    oid = 'ab' + 'd' * 38
    store.object_path(oid).parent.mkdir(parents=True)
    store.object_path(oid).write_bytes(zlib.compress(b'blob 10\0short'))
    with pytest.raises(CorruptObject):
        store.read(oid)


def test_raw_copy_between_stores(store, tmp_path):
    """Test compressed objects can be copied without re-encoding."""
    other = LooseObjectStore(tmp_path / 'other')
    oid = store.write(Blob(b'copied'))

    assert other.write_raw(oid, store.read_raw(oid)) is True
    assert other.write_raw(oid, store.read_raw(oid)) is False
    assert other.read(oid).data == b'copied'
