"""Unit tests for companion repository download and build steps."""

from release_pipeline.materialize.dependencies import (
    DependencySpec,
    dependency_build_steps,
    fetch_dependencies,
)
from release_pipeline.materialize.tree import TreeMaterializer
from release_pipeline.remote.models import RepoRef


class TestDependencyBuildSteps:
    """Tests for dependency_build_steps()."""

    def test_install_then_build(self, tmp_path):
        steps = dependency_build_steps(DependencySpec("domain-fetch"), tmp_path)

        assert [(s.name, s.command) for s in steps] == [
            ("install domain-fetch", "yarn"),
            ("build domain-fetch", "yarn build"),
        ]
        assert all(s.working_dir == tmp_path for s in steps)

    def test_prebuilt_repo_has_no_steps(self, tmp_path):
        assert dependency_build_steps(DependencySpec("pdf-viewer", build=False), tmp_path) == []


class TestFetchDependencies:
    """Tests for fetch_dependencies()."""

    def test_downloads_each_repo_into_packages(self, fake_github, fake_sleep, tmp_path):
        """Test every repo lands under packages/<name> and nothing is built."""
        for name in ("domain-fetch", "pdf-viewer"):
            sha = fake_github.add_tree({"package.json": name.encode()})
            fake_github.set_branch(RepoRef("PraxiveSoftware", name), "main", sha)
        specs = [DependencySpec("domain-fetch"), DependencySpec("pdf-viewer", build=False)]

        package_dirs = fetch_dependencies(
            TreeMaterializer(fake_github, sleep=fake_sleep), "PraxiveSoftware", specs, tmp_path
        )

        assert package_dirs == [
            tmp_path / "packages" / "domain-fetch",
            tmp_path / "packages" / "pdf-viewer",
        ]
        assert (package_dirs[0] / "package.json").read_bytes() == b"domain-fetch"
        assert (package_dirs[1] / "package.json").read_bytes() == b"pdf-viewer"
