"""
GitHub pull request lookup for local branches.

Uses the REST API directly through requests. Lookups never raise: any
network, auth or parsing failure means "no PR found".
"""

import enum
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from xgit.exceptions import XgitError
from xgit.utils.log import get_logger

logger = get_logger(__name__)

API_URL = 'https://api.github.com'
TOKEN_ENV = 'GITHUB_TOKEN'
PREFERRED_REMOTES = ('origin', 'upstream')

_GITHUB_URL_RE = re.compile(
    r'^(?:git@github\.com:|ssh://git@github\.com/|https?://github\.com/)'
    r'(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$'
)


class PullRequestState(enum.Enum):
    OPEN = 'open'
    CLOSED = 'closed'
    MERGED = 'merged'


@dataclass(frozen=True)
class PullRequestInfo:
    number: int
    title: str
    state: PullRequestState
    url: str
    draft: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PullRequestInfo':
        if data.get('merged_at'):
            state = PullRequestState.MERGED
        elif data.get('state') == 'closed':
            state = PullRequestState.CLOSED
        else:
            state = PullRequestState.OPEN
        return cls(
            number=int(data['number']),
            title=data.get('title') or '',
            state=state,
            url=data.get('html_url') or '',
            draft=bool(data.get('draft')),
        )


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """
    Owner and repository name of a GitHub remote URL.

    Examples:
        git@github.com:owner/repo.git -> ('owner', 'repo')
        https://github.com/owner/repo -> ('owner', 'repo')
    """
    match = _GITHUB_URL_RE.match(url.strip())
    if not match:
        return None
    return match.group('owner'), match.group('repo')


class GitHubClient:
    """Minimal GitHub REST client for listing pull requests."""

    def __init__(self, owner: str, repo: str, token: Optional[str] = None, timeout: float = 10):
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'xgit',
        })
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def find_pr_by_head(self, owner: str, branch: str) -> Optional[PullRequestInfo]:
        """
        First pull request (any state) whose head is ``owner:branch``.

        Raises:
            requests.RequestException: On network or HTTP errors
        """
        response = self.session.get(
            f'{API_URL}/repos/{self.owner}/{self.repo}/pulls',
            params={'state': 'all', 'head': f'{owner}:{branch}'},
            timeout=self.timeout,
        )
        response.raise_for_status()
        pulls = response.json()
        if not pulls:
            return None
        return PullRequestInfo.from_api(pulls[0])


class GitHubPRMatcher:
    """
    Finds the pull request belonging to a local branch.

    Strategies, in order:
    1. The branch name as head in the base repository owner's namespace
    2. The upstream branch name, when it differs
    3. The branch name under the owner of the GitHub remote (forks)
    """

    def __init__(self, repo, client: GitHubClient, github_remote: str):
        self.repo = repo
        self.client = client
        self.github_remote = github_remote

    @classmethod
    def for_repository(cls, repo, token: Optional[str] = None) -> Optional['GitHubPRMatcher']:
        """
        Build a matcher from the repository's GitHub remotes.

        Returns:
            GitHubPRMatcher, or None if no remote points at GitHub
        """
        remote = cls._github_remote(repo)
        if remote is None:
            logger.debug("No GitHub remote found")
            return None
        # Pull requests live in the base repository; a fork clone calls it 'upstream'
        base = 'upstream' if 'upstream' in repo.remote.remote_names() else remote
        parsed = parse_github_url(repo.remote.get_remote_url(base)) or parse_github_url(
            repo.remote.get_remote_url(remote))
        owner, name = parsed
        client = GitHubClient(owner, name, token=token or os.environ.get(TOKEN_ENV))
        return cls(repo, client, remote)

    @staticmethod
    def _github_remote(repo) -> Optional[str]:
        names = repo.remote.remote_names()
        ordered = [n for n in PREFERRED_REMOTES if n in names] + [n for n in names if n not in PREFERRED_REMOTES]
        for name in ordered:
            if parse_github_url(repo.remote.get_remote_url(name)):
                return name
        return None

    def _try(self, owner: str, branch: str) -> Optional[PullRequestInfo]:
        try:
            return self.client.find_pr_by_head(owner, branch)
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.debug(f"Pull request lookup for {owner}:{branch} failed: {e}")
            return None

    def find_pr_for_branch(self, branch: str) -> Optional[PullRequestInfo]:
        pr = self._try(self.client.owner, branch)
        if pr:
            return pr

        try:
            tracking = self.repo.branches.remote_tracking_info(branch)
        except XgitError:
            tracking = None
        if tracking:
            remote_branch = tracking.split('/', 1)[-1]
            if remote_branch != branch:
                pr = self._try(self.client.owner, remote_branch)
                if pr:
                    return pr

        parsed = parse_github_url(self.repo.remote.get_remote_url(self.github_remote))
        if parsed and parsed[0] != self.client.owner:
            return self._try(parsed[0], branch)
        return None

    __call__ = find_pr_for_branch
