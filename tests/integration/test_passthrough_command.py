"""Integration tests for subcommands forwarded to git."""

import pytest

from xgit.cli import passthrough
from xgit.cli.main import cli


@pytest.fixture
def git_calls(monkeypatch):
    """Record git invocations instead of running them."""
    calls = []

    def call(command):
        calls.append(command)
        return 0

    monkeypatch.setattr(passthrough.subprocess, 'call', call)
    return calls


class TestPassthrough:
    """Test forwarding of unknown subcommands."""

    def test_allowed_command_is_forwarded(self, runner, git_calls):
        result = runner.invoke(cli, ['status', '--short', '-b'])

        assert result.exit_code == 0
        assert git_calls == [['git', 'status', '--short', '-b']]

    def test_exit_code_is_preserved(self, runner, monkeypatch):
        monkeypatch.setattr(passthrough.subprocess, 'call', lambda command: 3)

        result = runner.invoke(cli, ['log', '--oneline'])

        assert result.exit_code == 3

    def test_help_flag_goes_to_git(self, runner, git_calls):
        result = runner.invoke(cli, ['stash', '--help'])

        assert result.exit_code == 0
        assert git_calls == [['git', 'stash', '--help']]

    def test_refused_command(self, runner, git_calls):
        result = runner.invoke(cli, ['gc', '--aggressive'])

        assert result.exit_code == 1
        assert "Command 'gc' is not allowed. Use 'git gc' directly if needed." in result.output
        assert git_calls == []

    def test_git_not_installed(self, runner, monkeypatch):
        def missing(command):
            raise FileNotFoundError(2, 'No such file or directory', 'git')

        monkeypatch.setattr(passthrough.subprocess, 'call', missing)

        result = runner.invoke(cli, ['status'])

        assert result.exit_code == 1
        assert 'Error running git status' in result.output
