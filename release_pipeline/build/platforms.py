"""Platform profiles for the release pipeline.

The orchestration is shared across platforms. Only the packaging
command, where it writes installers, and which files are metadata differ.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List

from release_pipeline.build.driver import BuildStep


@dataclass(frozen=True)
class PlatformProfile:
    """Packaging details for one target platform."""
    name: str
    package_command: str
    artifact_subpath: str
    excluded_extensions: FrozenSet[str] = field(default_factory=lambda: frozenset({".yml"}))

    def artifact_dir(self, source_dir: Path) -> Path:
        """Directory the packaging tool writes installers to."""
        return Path(source_dir) / self.artifact_subpath


PLATFORMS: Dict[str, PlatformProfile] = {
    "windows": PlatformProfile(
        name="windows",
        package_command="yarn compile-windows",
        artifact_subpath="dist/nsis-web",
    ),
    "linux": PlatformProfile(
        name="linux",
        package_command="yarn compile-linux",
        artifact_subpath="dist",
    ),
    "macos": PlatformProfile(
        name="macos",
        package_command="yarn compile-mac",
        artifact_subpath="dist",
    ),
}


def get_platform(name: str) -> PlatformProfile:
    """
    Look up a platform profile by name.

    Raises:
        KeyError: If the platform is unknown
    """
    try:
        return PLATFORMS[name]
    except KeyError:
        known = ", ".join(sorted(PLATFORMS))
        raise KeyError(f"Unknown platform '{name}' (known: {known})") from None


def default_steps(profile: PlatformProfile, source_dir: Path) -> List[BuildStep]:
    """Install, build and package steps for the main source tree."""
    source_dir = Path(source_dir)
    return [
        BuildStep(command="yarn", working_dir=source_dir, name="install dependencies"),
        BuildStep(command="yarn build", working_dir=source_dir, name="build"),
        BuildStep(
            command=profile.package_command,
            working_dir=source_dir,
            name=f"package for {profile.name}",
        ),
    ]
