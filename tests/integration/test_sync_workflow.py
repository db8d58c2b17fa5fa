"""Integration tests for fetch, pull and push against a local remote."""

import pytest

from xgit.cli.main import cli
from xgit.core.hash import short_oid
from tests.conftest import clone_into, commit_file, read, reopen


@pytest.fixture
def synced(published, tmp_path, monkeypatch):
    """
    repo and a second clone ('other') sharing a bare origin.

    Returns:
        (repo, other, bare) with cwd in repo's work tree
    """
    repo, bare = published
    other = clone_into(bare, tmp_path / 'other')
    monkeypatch.chdir(repo.work_tree)
    return repo, other, bare


class TestPushCommand:
    """Test pushing branches."""

    def test_push_new_commit(self, runner, synced):
        repo, _, bare = synced
        old = repo.head_commit()
        new = commit_file(repo, 'more.txt', 'more\n')

        result = runner.invoke(cli, ['push'])

        assert result.exit_code == 0
        assert f"Pushed main to origin ({short_oid(old)}..{short_oid(new)})" in result.output
        assert reopen(bare).refs.resolve('refs/heads/main') == new

    def test_push_up_to_date(self, runner, synced):
        result = runner.invoke(cli, ['push', 'origin', 'main'])

        assert result.exit_code == 0
        assert 'Everything up-to-date' in result.output

    def test_push_new_branch_with_upstream(self, runner, synced):
        repo, _, bare = synced
        runner.invoke(cli, ['checkout', '-b', 'topic'])
        tip = commit_file(reopen(repo), 'topic.txt', 'topic\n')

        result = runner.invoke(cli, ['push', '-u', 'origin', 'topic'])

        assert result.exit_code == 0
        assert f"Pushed new branch topic to origin ({short_oid(tip)})" in result.output
        assert "Branch 'topic' set up to track 'origin/topic'" in result.output
        assert reopen(bare).refs.resolve('refs/heads/topic') == tip
        assert reopen(repo).branches.upstream('topic') == 'origin/topic'

    def test_non_fast_forward_rejected_then_forced(self, runner, synced):
        repo, other, bare = synced
        commit_file(other, 'theirs.txt', 'theirs\n')
        other.remote.push('origin', 'main')
        old = reopen(bare).refs.resolve('refs/heads/main')
        mine = commit_file(repo, 'mine.txt', 'mine\n')

        result = runner.invoke(cli, ['push'])
        assert result.exit_code == 1
        assert 'rejected: not a fast-forward' in result.output
        assert reopen(bare).refs.resolve('refs/heads/main') == old

        result = runner.invoke(cli, ['push', '--force'])
        assert result.exit_code == 0
        assert f"({short_oid(old)}...{short_oid(mine)})" in result.output
        assert reopen(bare).refs.resolve('refs/heads/main') == mine

    def test_push_unknown_remote(self, runner, synced):
        result = runner.invoke(cli, ['push', 'nowhere'])

        assert result.exit_code == 1
        assert 'nowhere' in result.output


class TestFetchCommand:
    """Test fetching into remote-tracking branches."""

    def test_fetch_up_to_date(self, runner, synced):
        result = runner.invoke(cli, ['fetch'])

        assert result.exit_code == 0
        assert 'Fetching from origin...' in result.output
        assert 'Already up-to-date' in result.output

    def test_fetch_new_commits_leaves_branch_alone(self, runner, synced):
        repo, other, _ = synced
        old = repo.head_commit()
        new = commit_file(other, 'theirs.txt', 'theirs\n')
        other.remote.push('origin', 'main')

        result = runner.invoke(cli, ['fetch'])

        assert result.exit_code == 0
        assert f"{short_oid(old)}..{short_oid(new)} origin/main" in result.output
        assert 'Fetched ' in result.output
        repo = reopen(repo)
        assert repo.refs.resolve('refs/remotes/origin/main') == new
        assert repo.head_commit() == old
        assert not (repo.work_tree / 'theirs.txt').exists()

    def test_fetch_new_branch_and_prune(self, runner, synced):
        repo, other, bare = synced
        other.branches.create_and_checkout('side')
        commit_file(other, 'side.txt', 'side\n')
        other.remote.push('origin', 'side')

        result = runner.invoke(cli, ['fetch'])
        assert result.exit_code == 0
        assert '* [new branch] origin/side' in result.output

        bare.refs.delete_ref('refs/heads/side')
        result = runner.invoke(cli, ['fetch', '--prune'])
        assert result.exit_code == 0
        assert '- [deleted] origin/side' in result.output
        assert not reopen(repo).refs.exists('refs/remotes/origin/side')

    def test_fetch_unsupported_protocol(self, runner, synced):
        runner.invoke(cli, ['remote', 'add', 'hub', 'https://example.com/repo.git'])

        result = runner.invoke(cli, ['fetch', 'hub'])

        assert result.exit_code == 1
        assert "Protocol 'https' is not supported" in result.output


class TestPullCommand:
    """Test fetch-and-merge."""

    def test_pull_fast_forward(self, runner, synced):
        repo, other, _ = synced
        new = commit_file(other, 'theirs.txt', 'theirs\n')
        other.remote.push('origin', 'main')

        result = runner.invoke(cli, ['pull'])

        assert result.exit_code == 0
        assert 'Pulling origin/main...' in result.output
        assert f"Fast-forward pull: {new}" in result.output
        assert reopen(repo).head_commit() == new
        assert read(repo, 'theirs.txt') == 'theirs\n'

    def test_pull_merge_commit(self, runner, synced):
        repo, other, _ = synced
        theirs = commit_file(other, 'theirs.txt', 'theirs\n')
        other.remote.push('origin', 'main')
        mine = commit_file(repo, 'mine.txt', 'mine\n')

        result = runner.invoke(cli, ['pull'])

        assert result.exit_code == 0
        repo = reopen(repo)
        head = repo.head_commit()
        assert f"Pull merge commit created: {head}" in result.output
        commit = repo.read_commit(head)
        assert commit.parents == [mine, theirs]
        assert commit.summary == "Merge branch 'origin/main' into main"

    def test_pull_up_to_date(self, runner, synced):
        result = runner.invoke(cli, ['pull'])

        assert result.exit_code == 0
        assert 'Already up-to-date' in result.output

    def test_pull_conflict(self, runner, synced):
        repo, other, _ = synced
        commit_file(other, 'file1.txt', 'theirs\n')
        other.remote.push('origin', 'main')
        commit_file(repo, 'file1.txt', 'mine\n')

        result = runner.invoke(cli, ['pull'])

        assert result.exit_code == 1
        assert 'CONFLICT (content): Merge conflict in file1.txt' in result.output
        assert reopen(repo).merge.is_merge_in_progress()


class TestRemoteCommand:
    """Test managing remotes."""

    def test_no_remotes(self, runner, cli_repo):
        result = runner.invoke(cli, ['remote'])

        assert result.exit_code == 0
        assert 'No remotes configured' in result.output

    def test_add_list_set_url_remove(self, runner, cli_repo, tmp_path):
        url = str(tmp_path / 'shared.git')

        result = runner.invoke(cli, ['remote', 'add', 'origin', url])
        assert result.exit_code == 0
        assert f"Added remote 'origin': {url}" in result.output

        result = runner.invoke(cli, ['remote'])
        assert result.output.strip() == 'origin'

        result = runner.invoke(cli, ['remote', '-v'])
        assert f"origin\t{url}" in result.output

        result = runner.invoke(cli, ['remote', 'set-url', 'origin', '../elsewhere.git'])
        assert result.exit_code == 0
        assert reopen(cli_repo).remote.get_remote_url('origin') == '../elsewhere.git'

        result = runner.invoke(cli, ['remote', 'remove', 'origin'])
        assert result.exit_code == 0
        assert "Removed remote 'origin'" in result.output
        assert reopen(cli_repo).remote.remote_names() == []

    def test_add_duplicate(self, runner, cli_repo):
        runner.invoke(cli, ['remote', 'add', 'origin', '/tmp/a'])

        result = runner.invoke(cli, ['remote', 'add', 'origin', '/tmp/b'])

        assert result.exit_code == 1
        assert "Remote 'origin' already exists" in result.output

    def test_remove_unknown(self, runner, cli_repo):
        result = runner.invoke(cli, ['remote', 'remove', 'ghost'])

        assert result.exit_code == 1
        assert 'ghost' in result.output
