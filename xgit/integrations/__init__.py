"""Best-effort integrations with external tools and services.

Every entry point here degrades to ``None`` instead of raising, so the
repository engine never depends on them.
"""

from xgit.integrations.commit_message import generate_commit_message
from xgit.integrations.github import GitHubPRMatcher, PullRequestInfo, PullRequestState

__all__ = [
    'generate_commit_message',
    'GitHubPRMatcher',
    'PullRequestInfo',
    'PullRequestState',
]
