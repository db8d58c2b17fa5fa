"""Tests for work-tree checkout."""

import os

import pytest

from xgit.exceptions import CheckoutConflict
from xgit.operations.checkout import checkout_tree, is_modified, read_worktree_blob
from tests.conftest import commit_file, read, write_file


def tree_of(repo, oid):
    return repo.read_commit(oid).tree


def test_checkout_writes_and_removes(repo):
    """Test files are added, updated and removed to match the target tree."""
    first = commit_file(repo, 'keep.txt', 'v1\n')
    commit_file(repo, 'nested/extra.txt', 'extra\n')
    write_file(repo, 'keep.txt', 'v2\n')
    repo.staging.add(['keep.txt'])
    repo.staging.commit('v2')

    changed = checkout_tree(repo, tree_of(repo, first))

    assert changed == ['keep.txt', 'nested/extra.txt']
    assert read(repo, 'keep.txt') == 'v1\n'
    assert not (repo.work_tree / 'nested').exists()
    assert repo.read_index().paths() == ['keep.txt']


def test_refuses_to_overwrite_local_edits(repo):
    """Test a refused checkout changes neither files nor index."""
    first = commit_file(repo, 'file.txt', 'one\n')
    commit_file(repo, 'file.txt', 'two\n')
    write_file(repo, 'file.txt', 'local edit\n')
    index_before = repo.index_file.read_bytes()

    with pytest.raises(CheckoutConflict) as exc_info:
        checkout_tree(repo, tree_of(repo, first))

    assert exc_info.value.paths == ['file.txt']
    assert read(repo, 'file.txt') == 'local edit\n'
    assert repo.index_file.read_bytes() == index_before


def test_force_discards_local_edits(repo):
    first = commit_file(repo, 'file.txt', 'one\n')
    commit_file(repo, 'other.txt', 'other\n')
    write_file(repo, 'file.txt', 'local edit\n')

    checkout_tree(repo, tree_of(repo, first), force=True)

    assert read(repo, 'file.txt') == 'one\n'
    assert not (repo.work_tree / 'other.txt').exists()


def test_edit_matching_target_is_not_a_conflict(repo):
    first = commit_file(repo, 'file.txt', 'one\n')
    commit_file(repo, 'file.txt', 'two\n')
    write_file(repo, 'file.txt', 'one\n')
    checkout_tree(repo, tree_of(repo, first))
    assert read(repo, 'file.txt') == 'one\n'


def test_executable_bit_restored(repo):
    path = write_file(repo, 'run.sh', '#!/bin/sh\n')
    path.chmod(0o755)
    repo.staging.add(['run.sh'])
    oid = repo.staging.commit('script')
    path.unlink()

    checkout_tree(repo, tree_of(repo, oid), force=True)

    assert os.access(repo.work_tree / 'run.sh', os.X_OK)


def test_is_modified(repo):
    commit_file(repo, 'file.txt', 'same\n')
    entry = repo.read_index().get_entry('file.txt')
    assert not is_modified(repo, entry)

    write_file(repo, 'file.txt', 'different\n')
    assert is_modified(repo, entry)

    (repo.work_tree / 'file.txt').unlink()
    assert is_modified(repo, entry)


def test_read_worktree_blob(repo):
    write_file(repo, 'x.txt', 'hello world\n')
    assert read_worktree_blob(repo.work_tree / 'x.txt') == (
        '100644', '3b18e512dba79e4c8300dd08aeb37f8e728b8dad'
    )
    assert read_worktree_blob(repo.work_tree / 'missing') is None
