"""Unit tests for the build driver, platform profiles and artifact collector."""

import json
import subprocess
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

from release_pipeline.build.collector import (
    collect_artifacts,
    discover_version,
    stage_artifacts,
)
from release_pipeline.build.driver import BuildDriver, BuildStep
from release_pipeline.build.platforms import PLATFORMS, default_steps, get_platform
from release_pipeline.errors import (
    ArtifactDirectoryMissing,
    BuildStepFailed,
    VersionDiscoveryError,
)


def completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


class TestBuildStep:
    """Tests for BuildStep."""

    def test_name_defaults_to_command(self, tmp_path):
        step = BuildStep(command="yarn build", working_dir=str(tmp_path))

        assert step.name == "yarn build"
        assert step.working_dir == tmp_path

    def test_argv_split_on_posix(self, tmp_path):
        """Test the command is tokenized when no shell is used."""
        step = BuildStep(command="yarn compile-linux", working_dir=tmp_path)

        with patch("release_pipeline.build.driver.sys.platform", "linux"):
            assert step.argv() == ["yarn", "compile-linux"]

    def test_argv_kept_whole_on_windows(self, tmp_path):
        step = BuildStep(command="yarn compile-windows", working_dir=tmp_path)

        with patch("release_pipeline.build.driver.sys.platform", "win32"):
            assert step.argv() == "yarn compile-windows"


class TestBuildDriver:
    """Tests for BuildDriver."""

    def test_runs_steps_in_order(self, tmp_path):
        """Test each step runs in its own working directory, in order."""
        runner = MagicMock(return_value=completed())
        driver = BuildDriver(runner=runner)
        steps = [
            BuildStep("yarn", tmp_path / "packages" / "domain-fetch"),
            BuildStep("yarn build", tmp_path / "packages" / "domain-fetch"),
            BuildStep("yarn", tmp_path),
        ]

        driver.run_pipeline(steps)

        cwds = [c.kwargs["cwd"] for c in runner.call_args_list]
        assert cwds == [str(s.working_dir) for s in steps]
        assert runner.call_count == 3

    def test_first_failure_stops_pipeline(self, tmp_path):
        """Test a non-zero exit aborts before later steps run."""
        runner = MagicMock(side_effect=[completed(), completed(1, "error TS2304\n"), completed()])
        driver = BuildDriver(runner=runner)
        steps = [
            BuildStep("yarn", tmp_path, name="install"),
            BuildStep("yarn build", tmp_path, name="build"),
            BuildStep("yarn compile-windows", tmp_path, name="package"),
        ]

        with pytest.raises(BuildStepFailed) as exc_info:
            driver.run_pipeline(steps)

        assert exc_info.value.step_name == "build"
        assert exc_info.value.returncode == 1
        assert "error TS2304" in exc_info.value.output
        assert runner.call_count == 2

    def test_output_tail_kept(self, tmp_path):
        """Test only the last lines of a long failure log are kept."""
        log = "\n".join(f"line {i}" for i in range(100))
        driver = BuildDriver(runner=MagicMock(return_value=completed(2, log)))

        with pytest.raises(BuildStepFailed) as exc_info:
            driver.run_step(BuildStep("yarn build", tmp_path))

        lines = exc_info.value.output.splitlines()
        assert len(lines) == 40
        assert lines[-1] == "line 99"

    def test_missing_executable(self, tmp_path):
        """Test an executable that cannot be found reports exit code 127."""
        driver = BuildDriver(runner=MagicMock(side_effect=FileNotFoundError("yarn")))

        with pytest.raises(BuildStepFailed) as exc_info:
            driver.check_toolchain("yarn --version", tmp_path)

        assert exc_info.value.returncode == 127
        assert isinstance(exc_info.value.original_error, FileNotFoundError)

    def test_check_toolchain_success(self, tmp_path):
        runner = MagicMock(return_value=completed(0, "1.22.19\n"))

        BuildDriver(runner=runner).check_toolchain("yarn --version", tmp_path)

        runner.assert_called_once()

    def test_error_message(self, tmp_path):
        driver = BuildDriver(runner=MagicMock(return_value=completed(3)))

        with pytest.raises(BuildStepFailed, match="Build step 'package' failed with exit code 3"):
            driver.run_step(BuildStep("yarn compile-mac", tmp_path, name="package"))


class TestPlatforms:
    """Tests for platform profiles."""

    def test_windows_profile(self, tmp_path):
        profile = get_platform("windows")

        assert profile.package_command == "yarn compile-windows"
        assert profile.artifact_dir(tmp_path) == tmp_path / "dist" / "nsis-web"
        assert profile.excluded_extensions == frozenset({".yml"})

    def test_unknown_platform(self):
        with pytest.raises(KeyError, match="Unknown platform"):
            get_platform("beos")

    @pytest.mark.parametrize("name", sorted(PLATFORMS))
    def test_default_steps(self, name, tmp_path):
        """Test every platform installs, builds and packages in that order."""
        profile = get_platform(name)

        steps = default_steps(profile, tmp_path)

        assert [s.command for s in steps] == ["yarn", "yarn build", profile.package_command]
        assert all(s.working_dir == tmp_path for s in steps)


class TestDiscoverVersion:
    """Tests for discover_version()."""

    def test_reads_version(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "browser", "version": "2.0.1"}))

        assert discover_version(tmp_path) == "2.0.1"

    def test_prerelease_version(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"version": "2.0.0-beta.3"}))

        assert discover_version(tmp_path) == "2.0.0-beta.3"

    def test_missing_file(self, tmp_path):
        with pytest.raises(VersionDiscoveryError, match="file not found"):
            discover_version(tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")

        with pytest.raises(VersionDiscoveryError, match="unreadable"):
            discover_version(tmp_path)

    def test_missing_version_field(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "browser"}))

        with pytest.raises(VersionDiscoveryError, match="no version"):
            discover_version(tmp_path)

    def test_invalid_version(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"version": "latest"}))

        with pytest.raises(VersionDiscoveryError):
            discover_version(tmp_path)


class TestCollectArtifacts:
    """Tests for collect_artifacts()."""

    def test_excludes_metadata_extension(self, tmp_path):
        """Test app.exe.yml is excluded while app.exe and setup.msi are kept."""
        for name in ("app.exe", "app.exe.yml", "setup.msi"):
            (tmp_path / name).write_bytes(b"x")

        artifacts = collect_artifacts(tmp_path, {".yml"})

        assert [a.name for a in artifacts] == ["app.exe", "setup.msi"]

    def test_no_exclusions(self, tmp_path):
        for name in ("b.bin", "a.yml"):
            (tmp_path / name).write_bytes(b"x")

        assert [a.name for a in collect_artifacts(tmp_path, set())] == ["a.yml", "b.bin"]

    def test_extension_match_is_case_sensitive(self, tmp_path):
        (tmp_path / "LATEST.YML").write_bytes(b"x")

        assert [a.name for a in collect_artifacts(tmp_path, {".yml"})] == ["LATEST.YML"]

    def test_skips_subdirectories(self, tmp_path):
        """Test only immediate files are collected."""
        (tmp_path / "win-unpacked").mkdir()
        (tmp_path / "win-unpacked" / "Browser.exe").write_bytes(b"x")
        (tmp_path / "Setup.exe").write_bytes(b"x")

        assert [a.name for a in collect_artifacts(tmp_path, {".yml"})] == ["Setup.exe"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ArtifactDirectoryMissing) as exc_info:
            collect_artifacts(tmp_path / "dist" / "nsis-web", {".yml"})

        assert exc_info.value.path.endswith("nsis-web")

    def test_artifact_content_and_size(self, built_source):
        artifacts = collect_artifacts(built_source / "dist" / "nsis-web", {".yml"})

        by_name = {a.name: a for a in artifacts}
        assert set(by_name) == {"Browser-Setup-1.2.3.exe", "browser-1.2.3-x64.nsis.7z"}
        assert by_name["browser-1.2.3-x64.nsis.7z"].read_bytes() == b"7z\xbc\xaf"
        assert by_name["Browser-Setup-1.2.3.exe"].size == 66


class TestStageArtifacts:
    """Tests for stage_artifacts()."""

    def test_copies_into_version_dir(self, built_source, tmp_path):
        artifacts = collect_artifacts(built_source / "dist" / "nsis-web", {".yml"})

        staged = stage_artifacts(artifacts, tmp_path / "stage", "1.2.3")

        version_dir = tmp_path / "stage" / "version" / "1.2.3"
        assert sorted(p.name for p in version_dir.iterdir()) == [a.name for a in artifacts]
        assert all(Path(a.path).parent == version_dir for a in staged)
        assert [a.read_bytes() for a in staged] == [a.read_bytes() for a in artifacts]

    def test_restaging_overwrites(self, built_source, tmp_path):
        artifacts = collect_artifacts(built_source / "dist" / "nsis-web", {".yml"})

        stage_artifacts(artifacts, tmp_path, "1.2.3")
        staged = stage_artifacts(artifacts, tmp_path, "1.2.3")

        assert len(staged) == 2
