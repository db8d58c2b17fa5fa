"""Tests for GitHub pull request lookup."""

import pytest
import requests

from xgit.integrations.github import (
    GitHubClient,
    GitHubPRMatcher,
    PullRequestInfo,
    PullRequestState,
    parse_github_url,
)
from tests.conftest import commit_file


def api_pull(number=7, state='open', merged_at=None, draft=False):
    return {
        'number': number,
        'title': 'Add feature',
        'state': state,
        'merged_at': merged_at,
        'html_url': f'https://github.com/acme/widgets/pull/{number}',
        'draft': draft,
    }


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')

    def json(self):
        return self.payload


class FakeClient:
    """Answers lookups from a {(owner, branch): PullRequestInfo} table."""

    def __init__(self, owner, answers=None, error=None):
        self.owner = owner
        self.answers = answers or {}
        self.error = error
        self.queries = []

    def find_pr_by_head(self, owner, branch):
        self.queries.append((owner, branch))
        if self.error:
            raise self.error
        return self.answers.get((owner, branch))


PR = PullRequestInfo(7, 'Add feature', PullRequestState.OPEN, 'https://github.com/acme/widgets/pull/7')


@pytest.mark.parametrize('url', [
    'git@github.com:acme/widgets.git',
    'https://github.com/acme/widgets',
    'https://github.com/acme/widgets.git',
    'ssh://git@github.com/acme/widgets.git',
])
def test_parse_github_url(url):
    assert parse_github_url(url) == ('acme', 'widgets')


def test_parse_non_github_url():
    assert parse_github_url('/srv/repo.git') is None
    assert parse_github_url('https://gitlab.com/acme/widgets.git') is None


def test_pull_request_states():
    assert PullRequestInfo.from_api(api_pull()).state is PullRequestState.OPEN
    assert PullRequestInfo.from_api(api_pull(state='closed')).state is PullRequestState.CLOSED
    merged = PullRequestInfo.from_api(api_pull(state='closed', merged_at='2024-01-01T00:00:00Z'))
    assert merged.state is PullRequestState.MERGED
    assert PullRequestInfo.from_api(api_pull(draft=True)).draft


class TestClient:
    """Tests for the REST client."""

    def test_find_pr_by_head(self, monkeypatch):
        client = GitHubClient('acme', 'widgets', token='secret')
        calls = []

        def fake_get(url, params=None, timeout=None):
            calls.append((url, params, timeout))
            return FakeResponse([api_pull(number=12)])

        monkeypatch.setattr(client.session, 'get', fake_get)

        pr = client.find_pr_by_head('acme', 'feature')

        assert pr.number == 12
        assert calls == [(
            'https://api.github.com/repos/acme/widgets/pulls',
            {'state': 'all', 'head': 'acme:feature'},
            10,
        )]
        assert client.session.headers['Authorization'] == 'Bearer secret'

    def test_no_pull_requests(self, monkeypatch):
        client = GitHubClient('acme', 'widgets')
        monkeypatch.setattr(client.session, 'get', lambda *a, **kw: FakeResponse([]))
        assert client.find_pr_by_head('acme', 'feature') is None
        assert 'Authorization' not in client.session.headers

    def test_http_error_raises(self, monkeypatch):
        client = GitHubClient('acme', 'widgets')
        monkeypatch.setattr(client.session, 'get', lambda *a, **kw: FakeResponse({}, status=403))
        with pytest.raises(requests.HTTPError):
            client.find_pr_by_head('acme', 'feature')


class TestMatcher:
    """Tests for matching branches to pull requests."""

    def test_no_github_remote(self, repo_with_commits):
        repo_with_commits.remote.add_remote('origin', '/srv/repo.git')
        assert GitHubPRMatcher.for_repository(repo_with_commits) is None

    def test_for_repository_prefers_upstream_as_base(self, repo_with_commits, monkeypatch):
        monkeypatch.setenv('GITHUB_TOKEN', 'from-env')
        repo_with_commits.remote.add_remote('origin', 'git@github.com:me/widgets.git')
        repo_with_commits.remote.add_remote('upstream', 'https://github.com/acme/widgets.git')

        matcher = GitHubPRMatcher.for_repository(repo_with_commits)

        assert matcher.github_remote == 'origin'
        assert (matcher.client.owner, matcher.client.repo) == ('acme', 'widgets')
        assert matcher.client.session.headers['Authorization'] == 'Bearer from-env'

    def test_branch_name_match(self, repo_with_commits):
        repo_with_commits.remote.add_remote('origin', 'git@github.com:acme/widgets.git')
        client = FakeClient('acme', {('acme', 'main'): PR})
        matcher = GitHubPRMatcher(repo_with_commits, client, 'origin')
        assert matcher('main') == PR
        assert client.queries == [('acme', 'main')]

    def test_upstream_branch_name_match(self, repo_with_commits):
        """Test a branch pushed under another name is found by its upstream."""
        repo = repo_with_commits
        repo.remote.add_remote('origin', 'git@github.com:acme/widgets.git')
        repo.branches.create_and_checkout('local-name')
        commit_file(repo, 'x.txt', 'x\n')
        repo.branches.set_upstream('local-name', 'origin', 'feature/remote-name')
        client = FakeClient('acme', {('acme', 'feature/remote-name'): PR})

        assert GitHubPRMatcher(repo, client, 'origin').find_pr_for_branch('local-name') == PR
        assert client.queries == [('acme', 'local-name'), ('acme', 'feature/remote-name')]

    def test_fork_owner_match(self, repo_with_commits):
        repo = repo_with_commits
        repo.remote.add_remote('origin', 'git@github.com:me/widgets.git')
        repo.remote.add_remote('upstream', 'https://github.com/acme/widgets.git')
        client = FakeClient('acme', {('me', 'main'): PR})

        assert GitHubPRMatcher(repo, client, 'origin').find_pr_for_branch('main') == PR
        assert client.queries == [('acme', 'main'), ('me', 'main')]

    def test_no_match(self, repo_with_commits):
        repo_with_commits.remote.add_remote('origin', 'git@github.com:acme/widgets.git')
        client = FakeClient('acme')
        assert GitHubPRMatcher(repo_with_commits, client, 'origin')('main') is None

    def test_network_errors_mean_no_pr(self, repo_with_commits):
        repo_with_commits.remote.add_remote('origin', 'git@github.com:acme/widgets.git')
        client = FakeClient('acme', error=requests.ConnectionError('offline'))
        assert GitHubPRMatcher(repo_with_commits, client, 'origin')('main') is None
