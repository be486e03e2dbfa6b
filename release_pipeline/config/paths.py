"""Path constants and discovery for the release pipeline.

Defines the workspace layout (source tree, companion packages, staged
versions) and the user config directory.
"""

import os
import sys
from pathlib import Path


# Application name for config directories
APP_NAME = "ReleasePipeline"

# Workspace layout below the source tree root
DEPENDENCIES_SUBDIR = "packages"
VERSIONS_SUBDIR = "version"


def get_app_data_dir() -> Path:
    """
    Get the application data directory.

    Returns:
        Path to app data directory (created if not exists)

    Platform-specific locations:
        - Windows: %APPDATA%/ReleasePipeline
        - Linux: ~/.config/ReleasePipeline
        - macOS: ~/Library/Application Support/ReleasePipeline
    """
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    app_dir = base / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_settings_path() -> Path:
    """
    Get the path to the default settings JSON file.

    Returns:
        Path to settings.json
    """
    return get_app_data_dir() / "settings.json"


def get_dependencies_dir(source_dir: Path) -> Path:
    """Directory companion repositories are downloaded into."""
    return Path(source_dir) / DEPENDENCIES_SUBDIR


def get_version_dir(staging_root: Path, version: str) -> Path:
    """
    Directory holding the staged artifacts of one version.

    Args:
        staging_root: Workspace root
        version: Discovered version

    Returns:
        <staging_root>/version/<version>
    """
    # Sanitize version for use as directory name
    safe_version = "".join(c if c.isalnum() or c in "._-+" else "_" for c in version)
    return Path(staging_root) / VERSIONS_SUBDIR / safe_version
