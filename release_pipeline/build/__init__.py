"""Build module for the release pipeline.

This module drives the native toolchain and gathers its output:
- BuildDriver / BuildStep: ordered external process execution
- PlatformProfile: per-platform packaging command and output folder
- Collector: version discovery, artifact listing and staging
"""

from .driver import BuildDriver, BuildStep
from .platforms import PLATFORMS, PlatformProfile, default_steps, get_platform
from .collector import ArtifactFile, collect_artifacts, discover_version, stage_artifacts

__all__ = [
    "BuildDriver",
    "BuildStep",
    "PLATFORMS",
    "PlatformProfile",
    "default_steps",
    "get_platform",
    "ArtifactFile",
    "collect_artifacts",
    "discover_version",
    "stage_artifacts",
]
