"""Artifact collection for the release pipeline.

Reads the version produced by the build and gathers the installer files
the packaging step wrote, leaving out its metadata manifests.
"""

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from release_pipeline.config.paths import get_version_dir
from release_pipeline.errors import ArtifactDirectoryMissing, VersionDiscoveryError
from release_pipeline.utils.validators import validate_version

logger = logging.getLogger("release_pipeline.collector")

METADATA_FILE = "package.json"


@dataclass
class ArtifactFile:
    """A packaged file staged for upload. Content is read on demand."""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


def discover_version(source_dir: Union[str, Path]) -> str:
    """
    Read the version the build stamped into package.json.

    Args:
        source_dir: Root of the built source tree

    Returns:
        Version string, e.g. "1.4.0"

    Raises:
        VersionDiscoveryError: If the file is missing, unreadable or has no valid version
    """
    metadata_path = Path(source_dir) / METADATA_FILE
    try:
        with open(metadata_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise VersionDiscoveryError(str(metadata_path), "file not found", e)
    except (json.JSONDecodeError, IOError) as e:
        raise VersionDiscoveryError(str(metadata_path), "unreadable metadata", e)

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str):
        raise VersionDiscoveryError(str(metadata_path), "no version field")

    version = version.strip()
    is_valid, error = validate_version(version)
    if not is_valid:
        raise VersionDiscoveryError(str(metadata_path), error)

    logger.info(f"Discovered version {version} for {data.get('name', 'package')}")
    return version


def collect_artifacts(
    source_dir: Union[str, Path],
    excluded_extensions: Iterable[str],
) -> List[ArtifactFile]:
    """
    List the packaged files in a directory, skipping excluded extensions.

    Only immediate regular files are considered. The extension match is
    case-sensitive and looks at the last suffix only.

    Args:
        source_dir: Packaging output directory
        excluded_extensions: Suffixes to leave out, e.g. {".yml"}

    Returns:
        ArtifactFile list sorted by file name

    Raises:
        ArtifactDirectoryMissing: If source_dir does not exist
    """
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        logger.error(f"Error: {source_dir} does not exist.")
        raise ArtifactDirectoryMissing(str(source_dir))

    excluded = set(excluded_extensions)
    artifacts = []
    for entry in sorted(source_dir.iterdir(), key=lambda p: p.name):
        if not entry.is_file():
            continue
        if entry.suffix in excluded:
            logger.debug(f"Excluding metadata file {entry.name}")
            continue
        artifacts.append(ArtifactFile(entry))

    logger.info(f"Collected {len(artifacts)} artifacts from {source_dir}")
    return artifacts


def stage_artifacts(
    artifacts: Iterable[ArtifactFile],
    staging_root: Union[str, Path],
    version: str,
) -> List[ArtifactFile]:
    """
    Copy artifacts into <staging_root>/version/<version>/.

    Args:
        artifacts: Files to copy
        staging_root: Workspace root
        version: Discovered version

    Returns:
        ArtifactFile list pointing at the staged copies
    """
    version_dir = get_version_dir(Path(staging_root), version)
    version_dir.mkdir(parents=True, exist_ok=True)

    staged = []
    for artifact in artifacts:
        target = version_dir / artifact.name
        shutil.copy2(artifact.path, target)
        staged.append(ArtifactFile(target))

    logger.info(f"Staged {len(staged)} artifacts in {version_dir}")
    return staged
