"""Companion repository download for the release pipeline.

Some packages the browser consumes live in their own repositories and
are built in place under <source>/packages/<name>.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from release_pipeline.build.driver import BuildStep
from release_pipeline.config.paths import get_dependencies_dir
from release_pipeline.materialize.tree import TreeMaterializer
from release_pipeline.remote.models import RepoRef

logger = logging.getLogger("release_pipeline.dependencies")


@dataclass
class DependencySpec:
    """A companion repository downloaded next to the main source tree."""
    name: str
    build: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "DependencySpec":
        """Create a spec from a settings entry."""
        return cls(name=data["name"], build=data.get("build", True))

    def to_dict(self) -> dict:
        return {"name": self.name, "build": self.build}


def dependency_build_steps(spec: DependencySpec, package_dir: Path) -> List[BuildStep]:
    """Install and build steps for one dependency repository."""
    if not spec.build:
        return []
    return [
        BuildStep(command="yarn", working_dir=package_dir, name=f"install {spec.name}"),
        BuildStep(command="yarn build", working_dir=package_dir, name=f"build {spec.name}"),
    ]


def fetch_dependencies(
    materializer: TreeMaterializer,
    owner: str,
    specs: List[DependencySpec],
    source_dir: Path,
    branch: str = "main",
) -> List[Path]:
    """
    Download each dependency repository into <source_dir>/packages/<name>.

    Building is left to the caller, see dependency_build_steps().

    Args:
        materializer: Materializer bound to an authenticated client
        owner: Account owning the dependency repositories
        specs: Dependencies to fetch, in order
        source_dir: Root of the main source tree
        branch: Branch to download from each repository

    Returns:
        Package directories, in the order of specs
    """
    packages_dir = get_dependencies_dir(source_dir)
    packages_dir.mkdir(parents=True, exist_ok=True)

    package_dirs: List[Path] = []
    for spec in specs:
        package_dir = packages_dir / spec.name
        logger.info(f"Downloading the {spec.name} repo...")
        materializer.materialize_branch(RepoRef(owner, spec.name), branch, package_dir)
        logger.info(f"Downloaded the {spec.name} repo.")
        package_dirs.append(package_dir)

    return package_dirs
