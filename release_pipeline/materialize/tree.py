"""Tree materializer for the release pipeline.

Walks a remote git tree depth-first and reproduces it as a local
directory/file layout, fetching blob content on demand.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from release_pipeline.remote.exceptions import GitHubNotFoundError, UnsafePathError
from release_pipeline.remote.github_client import GitHubClient
from release_pipeline.remote.models import EntryType, RepoRef
from release_pipeline.remote.retry import retry_on_rate_limit
from release_pipeline.utils.validators import validate_tree_path

logger = logging.getLogger("release_pipeline.materializer")


@dataclass
class MaterializeStats:
    """Counters accumulated over one materialization walk."""
    directories: int = 0
    files: int = 0
    bytes_written: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return (
            f"{self.files} files ({self.bytes_written} bytes), "
            f"{self.directories} directories, {self.skipped} skipped"
        )

    def add(self, other: "MaterializeStats") -> None:
        """Fold the counters of a finished subtree into these."""
        self.directories += other.directories
        self.files += other.files
        self.bytes_written += other.bytes_written
        self.skipped += other.skipped


class TreeMaterializer:
    """Reconstructs a remote tree as local files and directories."""

    def __init__(
        self,
        client: GitHubClient,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the materializer.

        Args:
            client: GitHub client used for tree and blob fetches
            sleep: Blocking sleep used while waiting out rate limits
            clock: Returns the current UNIX time
            max_retries: Rate-limit retry bound per node (None = unbounded)
        """
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self._max_retries = max_retries

    def _retrying(self, func, *args):
        return retry_on_rate_limit(
            func, *args,
            sleep=self._sleep, clock=self._clock, max_retries=self._max_retries,
        )

    def materialize(
        self,
        repo: RepoRef,
        tree_sha: str,
        destination: Union[str, Path],
    ) -> MaterializeStats:
        """
        Materialize a tree into a destination directory.

        Args:
            repo: Repository holding the tree
            tree_sha: Root tree (or commit) sha
            destination: Local directory to populate (created if absent)

        Returns:
            MaterializeStats for the whole walk

        Raises:
            UnsafePathError: If an entry path would escape its directory
            GitHubError: For any fatal remote failure
        """
        destination = Path(destination)
        stats = self._retrying(self._materialize_node, repo, tree_sha, destination)
        logger.info(f"Materialized {repo}@{tree_sha[:7]} into {destination}: {stats}")
        return stats

    def materialize_branch(
        self,
        repo: RepoRef,
        branch: str,
        destination: Union[str, Path],
    ) -> MaterializeStats:
        """
        Resolve a branch head and materialize its tree.

        Args:
            repo: Repository to download
            branch: Branch name
            destination: Local directory to populate

        Returns:
            MaterializeStats for the whole walk
        """
        sha = self._retrying(self._client.resolve_branch_head, repo, branch)
        logger.info(f"Downloading {repo} source code from sha {sha}...")
        return self.materialize(repo, sha, destination)

    def _materialize_node(
        self,
        repo: RepoRef,
        tree_sha: str,
        destination: Path,
    ) -> MaterializeStats:
        """
        Visit one tree node.

        A rate limit raised anywhere below this call restarts the visit of
        the innermost node with the same arguments. Rewriting files already
        written by an earlier attempt leaves identical content, and the
        counters of the failed attempt are dropped with it.

        Returns:
            MaterializeStats for this node and everything below it
        """
        stats = MaterializeStats()
        destination.mkdir(parents=True, exist_ok=True)
        entries = self._client.get_tree(repo, tree_sha)

        for entry in entries:
            is_valid, error = validate_tree_path(entry.path)
            if not is_valid:
                logger.error(error)
                raise UnsafePathError(entry.path)

            target = destination / entry.path

            if entry.type == EntryType.TREE:
                target.mkdir(parents=True, exist_ok=True)
                child = self._retrying(self._materialize_node, repo, entry.sha, target)
                stats.directories += 1
                stats.add(child)

            elif entry.type == EntryType.BLOB:
                try:
                    content = self._client.get_blob_content(repo, entry.sha)
                except GitHubNotFoundError:
                    logger.warning(
                        f"Warning: File {entry.path} is a directory. "
                        f"Already downloaded, skipping..."
                    )
                    stats.skipped += 1
                    continue

                target.write_bytes(content)
                stats.files += 1
                stats.bytes_written += len(content)

            else:
                logger.warning(f"Skipping submodule entry {entry.path} ({entry.sha[:7]})")
                stats.skipped += 1

        return stats
