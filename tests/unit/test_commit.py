"""Tests for staging and committing."""

import pytest

from xgit.exceptions import MissingIdentity, XgitError
from tests.conftest import commit_file, write_file


class TestAdd:
    """Tests for staging files."""

    def test_add_reports_changed_paths(self, repo):
        write_file(repo, 'a.txt', 'a\n')
        write_file(repo, 'b.txt', 'b\n')
        assert repo.staging.add(['b.txt', 'a.txt']) == ['a.txt', 'b.txt']
        assert repo.staging.add(['a.txt']) == []

    def test_add_directory_respects_gitignore(self, repo):
        write_file(repo, '.gitignore', '*.log\nbuild/\n')
        write_file(repo, 'src/app.py', 'print()\n')
        write_file(repo, 'src/debug.log', 'noise\n')
        write_file(repo, 'build/out.bin', 'binary\n')

        changed = repo.staging.add(['.'])

        assert changed == ['.gitignore', 'src/app.py']

    def test_add_removes_deleted_files(self, repo):
        commit_file(repo, 'gone.txt', 'bye\n')
        (repo.work_tree / 'gone.txt').unlink()
        assert repo.staging.add(['gone.txt']) == ['gone.txt']
        assert repo.read_index().paths() == []

    def test_add_unknown_path(self, repo):
        with pytest.raises(XgitError, match='did not match any files'):
            repo.staging.add(['missing.txt'])

    def test_add_outside_work_tree(self, repo, tmp_path):
        outside = tmp_path / 'outside.txt'
        outside.write_text('x')
        with pytest.raises(XgitError, match='outside repository'):
            repo.staging.add([outside])

    def test_add_in_bare_repository(self, bare_repo):
        with pytest.raises(XgitError, match='work tree'):
            bare_repo.staging.add(['x'])


class TestCommit:
    """Tests for creating commits."""

    def test_first_commit_creates_branch(self, repo):
        """Test the first commit is a root commit and creates the branch."""
        oid = commit_file(repo, 'a.txt', 'a\n', 'Initial commit')

        commit = repo.read_commit(oid)
        assert commit.parents == []
        assert commit.author == 'Test User <test@example.com>'
        assert commit.message == 'Initial commit\n'
        assert repo.refs.resolve('refs/heads/main') == oid
        assert repo.branches.list_branches() == ['main']

    def test_second_commit_has_parent(self, repo):
        first = commit_file(repo, 'a.txt', 'a\n')
        second = commit_file(repo, 'a.txt', 'b\n')
        assert repo.read_commit(second).parents == [first]

    def test_commit_on_detached_head(self, repo_with_commits):
        head = repo_with_commits.head_commit()
        repo_with_commits.refs.detach_head(head)
        oid = commit_file(repo_with_commits, 'c.txt', 'c\n')
        assert repo_with_commits.refs.is_detached_head()
        assert repo_with_commits.head_commit() == oid
        assert repo_with_commits.refs.resolve('refs/heads/main') == head

    def test_missing_identity(self, repo, monkeypatch):
        monkeypatch.delenv('GIT_AUTHOR_NAME')
        write_file(repo, 'a.txt', 'a\n')
        repo.staging.add(['a.txt'])
        with pytest.raises(MissingIdentity) as exc_info:
            repo.staging.commit('msg')
        assert exc_info.value.key == 'name'
        assert repo.head_commit() is None


class TestStagedChanges:
    """Tests for inspecting the index against HEAD."""

    def test_has_staged_changes(self, repo):
        assert not repo.staging.has_staged_changes()
        write_file(repo, 'a.txt', 'a\n')
        repo.staging.add(['a.txt'])
        assert repo.staging.has_staged_changes()
        repo.staging.commit('a')
        assert not repo.staging.has_staged_changes()

        write_file(repo, 'a.txt', 'unstaged\n')
        assert not repo.staging.has_staged_changes()

    def test_staged_diff(self, repo_with_commits):
        write_file(repo_with_commits, 'file1.txt', 'Hello, xgit!\n')
        repo_with_commits.staging.add(['file1.txt'])

        diff = repo_with_commits.staging.staged_diff()

        assert diff.startswith('diff --git a/file1.txt b/file1.txt\n')
        assert '-Hello, World!' in diff
        assert '+Hello, xgit!' in diff
        assert 'file2.txt' not in diff

    def test_staged_diff_empty(self, repo_with_commits):
        assert repo_with_commits.staging.staged_diff() == ''
