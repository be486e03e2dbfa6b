"""Release pipeline orchestration.

Sequences one run: materialize source -> fetch companion repos -> build
-> collect artifacts -> reconcile release -> publish assets. Each stage
finishes before the next starts, and values flow between stages as
return values.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from release_pipeline.build.collector import (
    ArtifactFile,
    collect_artifacts,
    discover_version,
    stage_artifacts,
)
from release_pipeline.build.driver import BuildDriver, BuildStep
from release_pipeline.build.platforms import PlatformProfile, default_steps, get_platform
from release_pipeline.config.paths import get_dependencies_dir
from release_pipeline.config.settings import PipelineSettings
from release_pipeline.materialize.dependencies import (
    DependencySpec,
    dependency_build_steps,
    fetch_dependencies,
)
from release_pipeline.materialize.tree import TreeMaterializer
from release_pipeline.publish.publisher import AssetPublisher
from release_pipeline.publish.reconciler import ReleaseReconciler
from release_pipeline.remote.github_client import GitHubClient
from release_pipeline.remote.models import ReleaseAsset, ReleaseRecord, RepoRef
from release_pipeline.remote.retry import retry_on_rate_limit

logger = logging.getLogger("release_pipeline.pipeline")


@dataclass
class PipelineResult:
    """Outcome of a successful run."""
    version: str
    release: ReleaseRecord
    uploaded: List[ReleaseAsset] = field(default_factory=list)
    commit_sha: Optional[str] = None


class ReleasePipeline:
    """Runs the fetch, build and publish stages for one platform."""

    def __init__(
        self,
        settings: PipelineSettings,
        client: GitHubClient,
        driver: Optional[BuildDriver] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Validated pipeline settings
            client: Authenticated GitHub client
            driver: Build driver (default runs real processes)
            sleep: Blocking sleep used while waiting out rate limits
            clock: Returns the current UNIX time
        """
        self._settings = settings
        self._client = client
        self._driver = driver or BuildDriver()
        self._profile: PlatformProfile = get_platform(settings.platform)

        self._retry_options = retry_options = dict(
            sleep=sleep, clock=clock, max_retries=settings.max_rate_limit_retries
        )
        self._materializer = TreeMaterializer(client, **retry_options)
        self._reconciler = ReleaseReconciler(
            client,
            tag_prefix=settings.tag_prefix,
            create_tag=settings.create_tag,
            tag_branch=settings.release_branch,
            **retry_options,
        )
        self._publisher = AssetPublisher(
            client, skip_existing=settings.skip_existing_assets, **retry_options
        )

        self._source_repo = RepoRef(settings.source_owner, settings.source_repo)
        self._release_repo = RepoRef(settings.release_owner, settings.release_repo)

    @property
    def source_dir(self) -> Path:
        """Local root of the materialized source tree."""
        return Path(self._settings.workspace_dir).resolve()

    @property
    def profile(self) -> PlatformProfile:
        return self._profile

    def fetch_source(self) -> str:
        """
        Materialize the source branch and its companion repositories.

        Returns:
            Commit sha the source tree was downloaded from
        """
        logger.info(f"Source folder is: {self.source_dir}")
        commit_sha = self._resolve_source_head()
        self._materializer.materialize(self._source_repo, commit_sha, self.source_dir)
        logger.info("Downloaded the source code.")

        specs = self.dependency_specs()
        if specs:
            logger.info("Downloading the companion repos...")
            fetch_dependencies(
                self._materializer,
                self._settings.source_owner,
                specs,
                self.source_dir,
                self._settings.source_branch,
            )
            logger.info("Downloaded the companion repos.")
        return commit_sha

    def _resolve_source_head(self) -> str:
        return retry_on_rate_limit(
            self._client.resolve_branch_head,
            self._source_repo,
            self._settings.source_branch,
            **self._retry_options,
        )

    def dependency_specs(self) -> List[DependencySpec]:
        return [DependencySpec.from_dict(d) for d in self._settings.dependencies]

    def build_steps(self) -> List[BuildStep]:
        """Companion repo steps followed by the main install/build/package steps."""
        packages_dir = get_dependencies_dir(self.source_dir)
        steps = [
            step
            for spec in self.dependency_specs()
            for step in dependency_build_steps(spec, packages_dir / spec.name)
        ]
        return steps + default_steps(self._profile, self.source_dir)

    def build(self) -> None:
        """
        Run the build toolchain.

        Raises:
            BuildStepFailed: For the first failing step
        """
        self._driver.check_toolchain("yarn --version", self.source_dir)
        self._driver.run_pipeline(self.build_steps())
        logger.info(f"Installed dependencies and built for {self._profile.name}.")

    def collect(self) -> Tuple[str, List[ArtifactFile]]:
        """
        Discover the built version and gather the installers.

        Returns:
            Tuple of (version, artifacts)
        """
        version = discover_version(self.source_dir)
        artifacts = collect_artifacts(
            self._profile.artifact_dir(self.source_dir),
            self._profile.excluded_extensions,
        )
        if self._settings.stage_copy:
            stage_artifacts(artifacts, self.source_dir, version)
        return version, artifacts

    def release(self, version: str, commit_sha: Optional[str] = None) -> ReleaseRecord:
        """Find or create the release for a version."""
        # A source commit can only be tagged when releases live in the source repo
        if self._source_repo != self._release_repo:
            commit_sha = None
        return self._reconciler.resolve_release(self._release_repo, version, commit_sha)

    def publish(
        self,
        release: ReleaseRecord,
        artifacts: List[ArtifactFile],
    ) -> List[ReleaseAsset]:
        """Upload artifacts to the release."""
        return self._publisher.publish(self._release_repo, release, artifacts)

    def run(self, skip_fetch: bool = False, skip_build: bool = False) -> PipelineResult:
        """
        Run every stage in order.

        Args:
            skip_fetch: Reuse the source tree already on disk
            skip_build: Reuse build output already on disk

        Returns:
            PipelineResult describing the published release
        """
        commit_sha = None
        if skip_fetch:
            logger.info("Skipping source download")
        else:
            commit_sha = self.fetch_source()

        if skip_build:
            logger.info("Skipping build")
        else:
            self.build()

        version, artifacts = self.collect()
        release = self.release(version, commit_sha)
        uploaded = self.publish(release, artifacts)

        logger.info(f"Published {len(uploaded)} assets to release {release.tag_name}")
        return PipelineResult(
            version=version,
            release=release,
            uploaded=uploaded,
            commit_sha=commit_sha,
        )
