"""Asset publication for the release pipeline.

Uploads each collected artifact to the resolved release under its
original file name.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

from release_pipeline.build.collector import ArtifactFile
from release_pipeline.remote.github_client import GitHubClient
from release_pipeline.remote.models import ReleaseAsset, ReleaseRecord, RepoRef
from release_pipeline.remote.retry import retry_on_rate_limit

logger = logging.getLogger("release_pipeline.publisher")


class AssetPublisher:
    """Uploads artifacts to a release."""

    def __init__(
        self,
        client: GitHubClient,
        skip_existing: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the publisher.

        Args:
            client: GitHub client for the release repository
            skip_existing: Skip names already attached to the release
            sleep: Blocking sleep used while waiting out rate limits
            clock: Returns the current UNIX time
            max_retries: Rate-limit retry bound (None = unbounded)
        """
        self._client = client
        self._skip_existing = skip_existing
        self._sleep = sleep
        self._clock = clock
        self._max_retries = max_retries

    def publish(
        self,
        repo: RepoRef,
        release: ReleaseRecord,
        artifacts: Sequence[ArtifactFile],
    ) -> List[ReleaseAsset]:
        """
        Upload artifacts in order.

        A name already taken on the release fails the upload with
        GitHubAPIError unless skip_existing is set.

        Args:
            repo: Release repository
            release: Resolved release (never modified)
            artifacts: Files to upload

        Returns:
            The uploaded assets
        """
        logger.info(f"Uploading {len(artifacts)} files to release {release.tag_name}")
        uploaded: List[ReleaseAsset] = []

        for artifact in artifacts:
            if self._skip_existing and release.has_asset(artifact.name):
                logger.info(f"Asset {artifact.name} already attached, skipping")
                continue

            data = artifact.read_bytes()
            asset = retry_on_rate_limit(
                self._client.upload_asset, repo, release, artifact.name, data,
                sleep=self._sleep, clock=self._clock, max_retries=self._max_retries,
            )
            uploaded.append(asset)

        logger.info(f"Uploaded {len(uploaded)} assets to release {release.tag_name}")
        return uploaded
