"""Tests for the index."""

import hashlib

import pytest

from xgit.core.index import MODE_EXEC, MODE_REGULAR, Index
from xgit.core.objects import flatten_tree
from xgit.exceptions import CorruptObject, MergeConflict
from tests.conftest import write_file


def test_empty_index_when_missing(repo):
    assert len(repo.read_index()) == 0


def test_write_read_roundtrip(repo):
    """Test entries and stat data survive a write and read."""
    write_file(repo, 'a.txt', 'alpha\n')
    write_file(repo, 'dir/b.txt', 'beta\n')
    index = Index()
    index.add_file(repo, 'a.txt')
    index.add_file(repo, 'dir/b.txt')
    repo.write_index(index)

    restored = repo.read_index()
    assert restored.paths() == ['a.txt', 'dir/b.txt']
    entry = restored.get_entry('a.txt')
    assert entry.size == 6
    assert entry.mode == MODE_REGULAR
    assert entry.stat_matches((repo.work_tree / 'a.txt').stat())


def test_file_format_header_and_checksum(repo):
    index = Index()
    index.add_entry('x', 'a' * 40)
    repo.write_index(index)
    data = repo.index_file.read_bytes()
    assert data[:4] == b'DIRC'
    assert data[4:8] == (2).to_bytes(4, 'big')
    assert data[8:12] == (1).to_bytes(4, 'big')
    assert hashlib.sha1(data[:-20]).digest() == data[-20:]


def test_bad_checksum_is_corrupt(repo):
    index = Index()
    index.add_entry('x', 'a' * 40)
    repo.write_index(index)
    data = bytearray(repo.index_file.read_bytes())
    data[-1] ^= 0xFF
    repo.index_file.write_bytes(bytes(data))
    with pytest.raises(CorruptObject):
        repo.read_index()


def test_executable_mode(repo):
    path = write_file(repo, 'run.sh', '#!/bin/sh\n')
    path.chmod(0o755)
    index = Index()
    index.add_file(repo, 'run.sh')
    assert index.get_entry('run.sh').mode == MODE_EXEC
    assert index.tree_map()['run.sh'][0] == '100755'


def test_conflict_stages(repo):
    """Test stages 1-3 roundtrip and a stage-0 add resolves them."""
    index = Index()
    index.add_entry('c.txt', '1' * 40, stage=1)
    index.add_entry('c.txt', '2' * 40, stage=2)
    index.add_entry('c.txt', '3' * 40, stage=3)
    repo.write_index(index)

    restored = repo.read_index()
    assert restored.has_conflicts()
    assert restored.conflicted_paths() == ['c.txt']
    assert restored.get_entry('c.txt', 2).sha1 == '2' * 40
    assert restored.get_entry('c.txt') is None

    restored.add_entry('c.txt', '4' * 40)
    assert not restored.has_conflicts()
    assert restored.paths() == ['c.txt']


def test_write_tree_refuses_conflicts(repo):
    index = Index()
    index.add_entry('c.txt', '1' * 40, stage=2)
    with pytest.raises(MergeConflict):
        index.write_tree(repo)


def test_write_tree_builds_nested_trees(repo):
    """Test write_tree and read_tree agree on nested paths."""
    write_file(repo, 'top.txt', 'top\n')
    write_file(repo, 'a/b/c.txt', 'deep\n')
    write_file(repo, 'a/side.txt', 'side\n')
    index = Index()
    for path in ('top.txt', 'a/b/c.txt', 'a/side.txt'):
        index.add_file(repo, path)

    tree_oid = index.write_tree(repo)
    assert set(flatten_tree(repo, tree_oid)) == {'top.txt', 'a/b/c.txt', 'a/side.txt'}

    other = Index()
    other.read_tree(repo, tree_oid)
    assert other.tree_map() == index.tree_map()
    assert other.write_tree(repo) == tree_oid


def test_empty_tree(repo):
    assert Index().write_tree(repo) == '4b825dc642cb6eb9a060e54bf8d69288fbee4904'


def test_remove_entry():
    index = Index()
    index.add_entry('gone', 'a' * 40)
    assert index.remove_entry('gone')
    assert not index.remove_entry('gone')
