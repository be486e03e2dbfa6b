"""GitHub API client for the release pipeline.

Thin typed wrapper over the git data and releases endpoints: resolve a
branch head, list trees, fetch blobs, list and create releases, upload
release assets and create tag refs.
"""

import base64
import logging
import mimetypes
import time
from typing import List, Optional, Union
from urllib.parse import quote

import requests

from release_pipeline.remote.exceptions import (
    GitHubAPIError,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from release_pipeline.remote.models import ReleaseAsset, ReleaseRecord, RepoRef, TreeEntry

logger = logging.getLogger("release_pipeline.github_client")


# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
GITHUB_UPLOADS_BASE = "https://uploads.github.com"
RATE_LIMIT_MESSAGE_PREFIX = "API rate limit exceeded"

# Request timeout in seconds
REQUEST_TIMEOUT = 30

# Uploads can be large installers
UPLOAD_TIMEOUT = 600

RELEASES_PER_PAGE = 100

# Fallback wait when a rate-limit response carries no reset information
DEFAULT_RATE_LIMIT_WAIT = 60


class GitHubClient:
    """Client for the GitHub git data and releases APIs."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: int = REQUEST_TIMEOUT,
        api_base: str = GITHUB_API_BASE,
        uploads_base: str = GITHUB_UPLOADS_BASE,
    ):
        """
        Initialize GitHub client.

        Args:
            token: Access token sent as a bearer credential
            timeout: Request timeout in seconds
            api_base: REST API root URL
            uploads_base: Asset upload root URL
        """
        self._timeout = timeout
        self._api_base = api_base.rstrip("/")
        self._uploads_base = uploads_base.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": "ReleasePipeline/1.0",
            "X-GitHub-Api-Version": "2022-11-28",
        })
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def _repo_url(self, repo: RepoRef, path: str) -> str:
        return f"{self._api_base}/repos/{repo.owner}/{repo.name}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        url: str,
        timeout: Optional[int] = None,
        **kwargs
    ) -> requests.Response:
        """
        Make a request to the GitHub API.

        Args:
            method: HTTP method
            url: Full URL to request
            timeout: Override for the session timeout
            **kwargs: Passed through to requests

        Returns:
            The successful (2xx) response

        Raises:
            GitHubConnectionError: If unable to connect
            GitHubRateLimitError: If rate limit exceeded
            GitHubNotFoundError: If resource not found
            GitHubAPIError: For any other non-2xx status
        """
        try:
            logger.debug(f"{method} {url}")
            response = self._session.request(
                method, url, timeout=timeout or self._timeout, **kwargs
            )
        except requests.exceptions.Timeout as e:
            logger.error("GitHub request timed out")
            raise GitHubConnectionError("Request timed out connecting to GitHub", e)
        except requests.exceptions.ConnectionError as e:
            logger.error(f"GitHub connection error: {e}")
            raise GitHubConnectionError(
                "Unable to connect to GitHub. Check your network connection.", e
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"GitHub request error: {e}")
            raise GitHubError("Request failed", e)

        self._raise_for_status(response, url)
        return response

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        """Map a non-2xx response to the matching exception."""
        status = response.status_code
        if 200 <= status < 300:
            return

        message = self._error_message(response)

        if status in (403, 429) and self._is_rate_limited(response, message):
            raise GitHubRateLimitError(self._reset_epoch(response), message)
        if status == 404:
            raise GitHubNotFoundError(message or f"Resource not found: {url}", url)
        raise GitHubAPIError(status, message, url)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or ""
        if isinstance(data, dict):
            return str(data.get("message", ""))
        return ""

    @staticmethod
    def _is_rate_limited(response: requests.Response, message: str) -> bool:
        if message.startswith(RATE_LIMIT_MESSAGE_PREFIX):
            return True
        return response.headers.get("X-RateLimit-Remaining") == "0"

    @staticmethod
    def _reset_epoch(response: requests.Response) -> int:
        """Reset time from headers, falling back to Retry-After or a default wait."""
        reset = response.headers.get("X-RateLimit-Reset")
        if reset:
            try:
                return int(reset)
            except ValueError:
                logger.warning(f"Invalid X-RateLimit-Reset header: {reset}")

        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return int(time.time()) + int(retry_after)
            except ValueError:
                logger.warning(f"Invalid Retry-After header: {retry_after}")

        return int(time.time()) + DEFAULT_RATE_LIMIT_WAIT

    def resolve_branch_head(self, repo: RepoRef, branch: str) -> str:
        """
        Resolve a branch name to the commit sha it points at.

        Args:
            repo: Repository to query
            branch: Branch name (e.g., "main")

        Returns:
            Commit sha of the branch head

        Raises:
            GitHubNotFoundError: If the branch does not exist
        """
        url = self._repo_url(repo, f"git/ref/heads/{branch}")
        data = self._request("GET", url).json()
        sha = data["object"]["sha"]
        logger.info(f"Resolved {repo}@{branch} to {sha}")
        return sha

    def get_tree(self, repo: RepoRef, tree_sha: str) -> List[TreeEntry]:
        """
        Get one level of a git tree.

        Args:
            repo: Repository to query
            tree_sha: Tree or commit sha

        Returns:
            Tree entries in listing order
        """
        url = self._repo_url(repo, f"git/trees/{tree_sha}")
        data = self._request("GET", url).json()

        if data.get("truncated"):
            logger.warning(f"Tree listing for {tree_sha} in {repo} was truncated")

        return [TreeEntry.from_api_response(item) for item in data.get("tree", [])]

    def get_blob_content(self, repo: RepoRef, blob_sha: str) -> bytes:
        """
        Fetch a blob and decode its content to raw bytes.

        Args:
            repo: Repository to query
            blob_sha: Blob sha

        Returns:
            Decoded blob bytes

        Raises:
            GitHubNotFoundError: If the sha does not address a blob
        """
        url = self._repo_url(repo, f"git/blobs/{blob_sha}")
        data = self._request("GET", url).json()

        content = data.get("content") or ""
        encoding = data.get("encoding", "base64")
        if encoding == "base64":
            return base64.b64decode(content)
        return content.encode("utf-8")

    def list_releases(self, repo: RepoRef) -> List[ReleaseRecord]:
        """
        List all releases of a repository, following pagination.

        Args:
            repo: Repository to query

        Returns:
            List of ReleaseRecord objects (drafts included)
        """
        url = self._repo_url(repo, "releases")
        releases: List[ReleaseRecord] = []
        page = 1

        while True:
            data = self._request(
                "GET", url, params={"per_page": RELEASES_PER_PAGE, "page": page}
            ).json()
            if not isinstance(data, list):
                break
            releases.extend(ReleaseRecord.from_api_response(r) for r in data)
            if len(data) < RELEASES_PER_PAGE:
                break
            page += 1

        logger.info(f"Found {len(releases)} releases in {repo}")
        return releases

    def create_release(
        self,
        repo: RepoRef,
        tag_name: str,
        prerelease: bool = True,
        name: Optional[str] = None,
        target_commitish: Optional[str] = None,
    ) -> ReleaseRecord:
        """
        Create a release.

        Args:
            repo: Repository to create the release in
            tag_name: Tag the release points at
            prerelease: Mark the release as a prerelease
            name: Release title (defaults to the tag name)
            target_commitish: Commit or branch used when the tag does not exist

        Returns:
            The created ReleaseRecord
        """
        payload = {
            "tag_name": tag_name,
            "name": name or tag_name,
            "prerelease": prerelease,
        }
        if target_commitish:
            payload["target_commitish"] = target_commitish

        url = self._repo_url(repo, "releases")
        data = self._request("POST", url, json=payload).json()
        release = ReleaseRecord.from_api_response(data)

        logger.info(f"Created release {release.tag_name} with id {release.id}")
        return release

    def upload_asset(
        self,
        repo: RepoRef,
        release: Union[ReleaseRecord, int],
        file_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> ReleaseAsset:
        """
        Upload a binary asset to a release.

        Args:
            repo: Repository owning the release
            release: ReleaseRecord or release id
            file_name: Asset name shown on the release
            data: Asset content
            content_type: MIME type (guessed from the name if omitted)

        Returns:
            The uploaded ReleaseAsset
        """
        upload_url = ""
        if isinstance(release, ReleaseRecord):
            upload_url = release.upload_url.split("{")[0]
            release_id = release.id
        else:
            release_id = release

        if not upload_url:
            upload_url = (
                f"{self._uploads_base}/repos/{repo.owner}/{repo.name}"
                f"/releases/{release_id}/assets"
            )

        if content_type is None:
            content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        logger.info(f"Uploading asset: {file_name} ({len(data)} bytes)")
        response = self._request(
            "POST",
            f"{upload_url}?name={quote(file_name)}",
            timeout=UPLOAD_TIMEOUT,
            data=data,
            headers={"Content-Type": content_type},
        )
        return ReleaseAsset.from_api_response(response.json())

    def create_tag_ref(self, repo: RepoRef, tag_name: str, commit_sha: str) -> None:
        """
        Create a lightweight tag ref pointing at a commit.

        An already existing ref is accepted so the call can be repeated.

        Args:
            repo: Repository to tag
            tag_name: Tag name without the refs/tags/ prefix
            commit_sha: Commit the tag points at
        """
        url = self._repo_url(repo, "git/refs")
        payload = {"ref": f"refs/tags/{tag_name}", "sha": commit_sha}
        try:
            self._request("POST", url, json=payload)
            logger.info(f"Created tag {tag_name} at {commit_sha}")
        except GitHubAPIError as e:
            if e.status == 422 and "already exists" in e.api_message:
                logger.info(f"Tag {tag_name} already exists")
                return
            raise

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> "GitHubClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
