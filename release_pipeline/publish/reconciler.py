"""Release reconciliation for the release pipeline.

Finds the release for a version or creates it, so that repeated runs
for the same version converge on a single release.
"""

import logging
import time
from typing import Callable, Optional

from release_pipeline.remote.github_client import GitHubClient
from release_pipeline.remote.models import ReleaseRecord, RepoRef
from release_pipeline.remote.retry import retry_on_rate_limit

logger = logging.getLogger("release_pipeline.reconciler")


class ReleaseReconciler:
    """Resolves the release a version's assets are attached to."""

    def __init__(
        self,
        client: GitHubClient,
        tag_prefix: str = "",
        create_tag: bool = False,
        tag_branch: str = "main",
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            client: GitHub client for the release repository
            tag_prefix: Prefix put in front of the version to form the tag
            create_tag: Create the tag ref explicitly before the release
            tag_branch: Branch whose head is tagged when no commit is given
            sleep: Blocking sleep used while waiting out rate limits
            clock: Returns the current UNIX time
            max_retries: Rate-limit retry bound (None = unbounded)
        """
        self._client = client
        self._tag_prefix = tag_prefix
        self._create_tag = create_tag
        self._tag_branch = tag_branch
        self._sleep = sleep
        self._clock = clock
        self._max_retries = max_retries

    def tag_for_version(self, version: str) -> str:
        """Canonical tag name for a version."""
        return f"{self._tag_prefix}{version}"

    def find_release(self, repo: RepoRef, tag_name: str) -> Optional[ReleaseRecord]:
        """
        Find a release whose tag matches exactly.

        Args:
            repo: Release repository
            tag_name: Tag to look for

        Returns:
            ReleaseRecord or None if no release has this tag
        """
        for release in self._client.list_releases(repo):
            if release.tag_name == tag_name:
                return release
        return None

    def resolve_release(
        self,
        repo: RepoRef,
        version: str,
        commit_sha: Optional[str] = None,
    ) -> ReleaseRecord:
        """
        Return the release for a version, creating it if needed.

        Args:
            repo: Release repository
            version: Discovered version
            commit_sha: Commit in the release repository to tag when explicit
                tag creation is enabled (default: head of tag_branch)

        Returns:
            Existing or newly created ReleaseRecord
        """
        return retry_on_rate_limit(
            self._resolve, repo, version, commit_sha,
            sleep=self._sleep, clock=self._clock, max_retries=self._max_retries,
        )

    def _resolve(
        self,
        repo: RepoRef,
        version: str,
        commit_sha: Optional[str],
    ) -> ReleaseRecord:
        tag_name = self.tag_for_version(version)
        logger.info(f"Checking if release {tag_name} already exists in {repo}...")

        existing = self.find_release(repo, tag_name)
        if existing:
            logger.info(
                f"Release with tag {tag_name} already exists. "
                f"Using existing release {existing.id}."
            )
            return existing

        logger.info(f"Release with tag {tag_name} does not exist. Creating new release.")
        if self._create_tag:
            if not commit_sha:
                commit_sha = self._client.resolve_branch_head(repo, self._tag_branch)
            self._client.create_tag_ref(repo, tag_name, commit_sha)

        release = self._client.create_release(repo, tag_name, prerelease=True)
        logger.info(f"Created the release with id {release.id}.")
        return release
