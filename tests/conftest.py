"""Shared pytest fixtures for xgit tests."""

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from xgit.core.config import Config
from xgit.core.objects import Blob, Commit, Tree
from xgit.core.repository import Repository
from xgit.operations.checkout import checkout_tree

AUTHOR = "Test User <test@example.com>"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the user's ~/.gitconfig and environment."""
    monkeypatch.setattr(Config, 'GLOBAL_CONFIG_PATH', tmp_path / 'global.gitconfig')
    for name in list(os.environ):
        if name.startswith(('XGIT_', 'GIT_')):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'Test User')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'test@example.com')


@pytest.fixture
def temp_dir(tmp_path):
    """A fresh directory for a work tree."""
    path = tmp_path / 'work'
    path.mkdir()
    return path


@pytest.fixture
def repo(temp_dir):
    """An initialized repository on an unborn 'main' branch."""
    return Repository.init(temp_dir, initial_branch='main')


@pytest.fixture
def bare_repo(tmp_path):
    """An empty bare repository."""
    return Repository.init_bare(tmp_path / 'remote.git', initial_branch='main')


def write_file(repo, path, content):
    file_path = repo.work_tree / path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode()
    file_path.write_bytes(content)
    return file_path


def commit_file(repo, path, content, message=None):
    """
    Write a file, stage it and commit it on the current branch.

    Returns:
        str: New commit id
    """
    write_file(repo, path, content)
    repo.staging.add([path])
    return repo.staging.commit(message or f"Update {path}")


def make_commit(repo, files, parents, message='commit', timestamp=None):
    """
    Write a commit straight into the object store, bypassing index and refs.

    Args:
        files: {name: content} for a flat tree
        parents: Parent commit ids

    Returns:
        str: Commit id
    """
    tree = Tree()
    for name, content in files.items():
        oid = repo.write_object(Blob(content.encode() if isinstance(content, str) else content))
        tree.add_entry('100644', name, oid)
    tree_oid = repo.write_object(tree)
    commit = Commit.create(tree_oid, parents, AUTHOR, message, timestamp=timestamp, timezone='+0000')
    return repo.write_object(commit)


def clone_into(remote, dest, branch='main'):
    """
    Make dest a clone of remote: origin configured, branch checked out and
    tracking origin/branch.
    """
    repo = Repository.init(dest, initial_branch=branch)
    repo.remote.add_remote('origin', str(remote.git_dir))
    repo.remote.fetch('origin')
    tip = repo.refs.resolve(f'refs/remotes/origin/{branch}')
    if tip:
        repo.refs.update_ref(f'refs/heads/{branch}', tip)
        checkout_tree(repo, repo.read_commit(tip).tree, force=True)
        repo.branches.set_upstream(branch, 'origin')
    return repo


@pytest.fixture
def repo_with_commits(repo):
    """Repository with two commits on main."""
    commit_file(repo, 'file1.txt', 'Hello, World!\n', 'First commit')
    commit_file(repo, 'file2.txt', 'Second file\n', 'Second commit')
    return repo


@pytest.fixture
def feature_repo(repo):
    """
    main at A, feature at A -> B.

    Returns:
        (repo, A, B) with HEAD on main
    """
    a = commit_file(repo, 'shared.txt', 'line 1\nline 2\nline 3\n', 'A')
    repo.branches.create_and_checkout('feature')
    b = commit_file(repo, 'feature.txt', 'feature work\n', 'B')
    repo.branches.checkout('main')
    return repo, a, b


@pytest.fixture
def published(repo_with_commits, bare_repo):
    """A repository whose main has been pushed to a bare origin."""
    repo_with_commits.remote.add_remote('origin', str(bare_repo.git_dir))
    repo_with_commits.remote.push('origin', 'main', set_upstream=True)
    return repo_with_commits, bare_repo


@pytest.fixture
def cli_repo(repo, monkeypatch):
    """Repository with the process working directory inside its work tree."""
    monkeypatch.chdir(repo.work_tree)
    return repo


@pytest.fixture
def runner():
    return CliRunner()


def reopen(repo):
    """Fresh handle on the same repository (drops cached config and graph)."""
    return Repository.open(repo.work_tree or repo.git_dir)


def read(repo, path):
    return Path(repo.work_tree / path).read_text()
