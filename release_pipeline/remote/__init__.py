"""Remote repository module for GitHub integration.

This module handles all calls to the repository host:
- GitHubClient: git data (refs, trees, blobs) and releases API
- Models: RepoRef, TreeEntry, ReleaseRecord, ReleaseAsset dataclasses
- Exceptions: GitHub error hierarchy, rate limiting included
- retry_on_rate_limit: wait for quota reset and repeat a call
"""

from .models import EntryType, RepoRef, TreeEntry, ReleaseRecord, ReleaseAsset
from .exceptions import (
    GitHubError,
    GitHubConnectionError,
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    UnsafePathError,
)
from .github_client import GitHubClient
from .retry import retry_on_rate_limit

__all__ = [
    # Models
    "EntryType",
    "RepoRef",
    "TreeEntry",
    "ReleaseRecord",
    "ReleaseAsset",
    # Exceptions
    "GitHubError",
    "GitHubConnectionError",
    "GitHubAPIError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "UnsafePathError",
    # Client
    "GitHubClient",
    "retry_on_rate_limit",
]
