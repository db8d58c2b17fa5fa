"""Object model tests."""

import pytest

from xgit.core.objects import Blob, Commit, GitObject, Tree, TreeEntry, flatten_tree
from xgit.exceptions import CorruptObject


def test_blob_roundtrip():
    """Test blob serialization keeps content intact."""
    blob = Blob(b'Hello, World!')
    restored = GitObject.from_payload('blob', blob.serialize())
    assert isinstance(restored, Blob)
    assert restored.data == b'Hello, World!'
    assert restored.oid == blob.oid


def test_blob_binary_detection():
    assert Blob(b'\x00\x01binary').is_binary
    assert not Blob(b'plain text\n').is_binary


def test_tree_entries_sorted_like_git():
    """Test directories sort as if their name ended in '/'."""
    tree = Tree()
    tree.add_entry('100644', 'foo.txt', 'a' * 40)
    tree.add_entry('40000', 'foo', 'b' * 40)
    tree.add_entry('100644', 'bar', 'c' * 40)
    assert [e.name for e in tree.entries] == ['bar', 'foo.txt', 'foo']


def test_tree_add_entry_replaces():
    tree = Tree()
    tree.add_entry('100644', 'file', 'a' * 40)
    tree.add_entry('100755', 'file', 'b' * 40)
    assert len(tree.entries) == 1
    assert tree.get('file').mode == '100755'
    assert tree.get('missing') is None


def test_tree_roundtrip():
    """Test tree serialization and deserialization."""
    tree = Tree([TreeEntry('100644', 'a.txt', '1' * 40), TreeEntry('40000', 'sub', '2' * 40)])
    restored = GitObject.from_payload('tree', tree.serialize())
    assert restored.entries == tree.entries
    assert restored.get('sub').is_tree


def test_commit_create_defaults():
    """Test committer defaults to author and a trailing newline is added."""
    commit = Commit.create('t' * 40, ['p' * 40], 'A <a@example.com>', 'Summary line',
                           timestamp=1700000000, timezone='+0100')
    assert commit.committer == 'A <a@example.com>'
    assert commit.message == 'Summary line\n'
    assert commit.summary == 'Summary line'
    assert commit.author_time == commit.committer_time == 1700000000


def test_commit_roundtrip_keeps_parent_order():
    """Test merge commits keep their parents in order."""
    parents = ['1' * 40, '2' * 40]
    commit = Commit.create('3' * 40, parents, 'A <a@example.com>', 'Merge\n\nbody\n',
                           timestamp=1700000000, timezone='-0500')
    restored = GitObject.from_payload('commit', commit.serialize())
    assert restored.parents == parents
    assert restored.tree == '3' * 40
    assert restored.author == 'A <a@example.com>'
    assert restored.author_timezone == '-0500'
    assert restored.message == 'Merge\n\nbody\n'
    assert restored.oid == commit.oid


def test_commit_ignores_unknown_headers():
    """Test signed commits decode and keep the id they were stored under."""
    payload = (
        'tree ' + 'a' * 40 + '\n'
        'author A <a@x> 1 +0000\n'
        'committer A <a@x> 1 +0000\n'
        'gpgsig -----BEGIN PGP SIGNATURE-----\n'
        ' abc\n'
        ' -----END PGP SIGNATURE-----\n'
        '\n'
        'signed\n'
    ).encode()
    commit = GitObject.from_payload('commit', payload, oid='f' * 40)
    assert commit.tree == 'a' * 40
    assert commit.message == 'signed\n'
    assert commit.oid == 'f' * 40


def test_unknown_type_is_corrupt():
    with pytest.raises(CorruptObject):
        GitObject.from_payload('tag', b'')


def test_commit_without_tree_is_corrupt():
    with pytest.raises(CorruptObject):
        GitObject.from_payload('commit', b'author A <a@x> 1 +0000\n\nmsg\n')


def test_flatten_tree(repo):
    """Test nested trees flatten to slash-separated paths."""
    inner = Tree()
    inner.add_entry('100644', 'deep.txt', repo.write_object(Blob(b'deep')))
    root = Tree()
    root.add_entry('40000', 'dir', repo.write_object(inner))
    root.add_entry('100755', 'run.sh', repo.write_object(Blob(b'#!/bin/sh\n')))

    files = flatten_tree(repo, repo.write_object(root))

    assert set(files) == {'dir/deep.txt', 'run.sh'}
    assert files['run.sh'][0] == '100755'
    assert flatten_tree(repo, None) == {}
