"""GitHub REST publishing."""

from .client import CommitResult, GitHubClient, GitHubError, parse_repo_url
from .publisher import PublishResult, Publisher

__all__ = [
    "CommitResult",
    "GitHubClient",
    "GitHubError",
    "PublishResult",
    "Publisher",
    "parse_repo_url",
]
