"""GitHub API exceptions for the release pipeline.

Maps remote host failures to a small hierarchy so callers can tell
recoverable conditions (rate limiting, a missing blob) from fatal ones.
"""

from typing import Optional

from release_pipeline.errors import PipelineError


class GitHubError(PipelineError):
    """Base exception for GitHub API errors."""
    pass


class GitHubConnectionError(GitHubError):
    """Raised when unable to connect to GitHub."""
    pass


class GitHubAPIError(GitHubError):
    """Raised for a non-2xx response that is not a rate limit."""

    def __init__(self, status: int, message: str, url: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(f"GitHub API error {status}: {message}")
        self.api_message = message


class GitHubNotFoundError(GitHubAPIError):
    """Raised when a repository, ref, blob or release is not found."""

    def __init__(self, message: str = "Not Found", url: Optional[str] = None):
        super().__init__(404, message, url)


class GitHubRateLimitError(GitHubError):
    """Raised when the GitHub API quota is exhausted.

    reset_epoch is the UNIX time (seconds) at which the quota resets.
    """

    def __init__(self, reset_epoch: int, message: str = "API rate limit exceeded"):
        self.reset_epoch = reset_epoch
        super().__init__(f"GitHub {message} (resets at {reset_epoch})")


class UnsafePathError(GitHubError):
    """A tree entry path would escape its destination directory."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Refusing to materialize unsafe tree path: '{path}'")
