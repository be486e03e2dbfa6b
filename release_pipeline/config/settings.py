"""Pipeline settings management for the release pipeline.

Provides PipelineSettings dataclass and SettingsManager for persistence,
plus RELEASE_PIPELINE_* environment overrides for CI runners.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from release_pipeline.build.platforms import PLATFORMS
from release_pipeline.config.paths import get_settings_path
from release_pipeline.errors import ConfigurationError
from release_pipeline.utils.validators import (
    validate_branch_name,
    validate_repo_slug,
    validate_timeout,
)

logger = logging.getLogger("release_pipeline.settings")

ENV_PREFIX = "RELEASE_PIPELINE_"


def _default_dependencies() -> List[Dict]:
    return [
        {"name": "domain-fetch", "build": True},
        {"name": "pdf-viewer", "build": False},
        {"name": "print-viewer", "build": True},
    ]


@dataclass
class PipelineSettings:
    """Settings for one pipeline run."""

    # Source repository
    source_owner: str = "PraxiveSoftware"
    source_repo: str = "browser"
    source_branch: str = "main"

    # Companion repositories fetched into packages/
    dependencies: List[Dict] = field(default_factory=_default_dependencies)

    # Release repository
    release_owner: str = "PraxiveSoftware"
    release_repo: str = "releases"
    release_branch: str = "main"
    tag_prefix: str = ""
    create_tag: bool = False
    skip_existing_assets: bool = False

    # Local workspace
    workspace_dir: str = "browser"
    platform: str = "windows"
    stage_copy: bool = False

    # Network
    timeout: int = 30
    max_rate_limit_retries: Optional[int] = None

    log_file: Optional[str] = None

    @property
    def source_slug(self) -> str:
        return f"{self.source_owner}/{self.source_repo}"

    @property
    def release_slug(self) -> str:
        return f"{self.release_owner}/{self.release_repo}"

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def validate(self) -> None:
        """
        Check the settings before any remote call is made.

        Raises:
            ConfigurationError: On the first invalid value
        """
        checks = [
            validate_repo_slug(self.source_slug),
            validate_repo_slug(self.release_slug),
            validate_branch_name(self.source_branch),
            validate_branch_name(self.release_branch),
            validate_timeout(self.timeout),
        ]
        for is_valid, error in checks:
            if not is_valid:
                raise ConfigurationError(error)

        for entry in self.dependencies:
            if not isinstance(entry, dict) or not entry.get("name"):
                raise ConfigurationError(f"Dependency entries need a name, got {entry!r}")
            is_valid, error = validate_repo_slug(f"{self.source_owner}/{entry['name']}")
            if not is_valid:
                raise ConfigurationError(f"Invalid dependency: {error}")

        if self.platform not in PLATFORMS:
            known = ", ".join(sorted(PLATFORMS))
            raise ConfigurationError(f"Unknown platform '{self.platform}' (known: {known})")

        if self.max_rate_limit_retries is not None and self.max_rate_limit_retries < 0:
            raise ConfigurationError("max_rate_limit_retries must not be negative")


def _coerce(value: str, current):
    """Convert an environment string to the type of the current value."""
    if isinstance(current, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, list):
        return json.loads(value)
    return value


def apply_env_overrides(
    settings: PipelineSettings,
    environ: Optional[Mapping[str, str]] = None,
) -> PipelineSettings:
    """
    Override settings from RELEASE_PIPELINE_<FIELD> environment variables.

    Args:
        settings: Settings to update in place
        environ: Environment mapping (default os.environ)

    Returns:
        The updated settings

    Raises:
        ConfigurationError: If a value cannot be converted
    """
    environ = os.environ if environ is None else environ

    for f in fields(settings):
        key = ENV_PREFIX + f.name.upper()
        if key not in environ:
            continue
        current = getattr(settings, f.name)
        try:
            if current is None and f.name == "max_rate_limit_retries":
                value = int(environ[key])
            else:
                value = _coerce(environ[key], current)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {key}", e)
        setattr(settings, f.name, value)
        logger.debug(f"Setting {f.name} overridden from environment")

    return settings


class SettingsManager:
    """Manages pipeline settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[PipelineSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> PipelineSettings:
        """
        Load settings from disk.

        Returns:
            PipelineSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = PipelineSettings.from_dict(data)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Ignoring unreadable settings file {self._config_path}: {e}")
                self._settings = PipelineSettings()
        else:
            self._settings = PipelineSettings()

        return self._settings

    def save(self, settings: PipelineSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        # Ensure parent directory exists
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def update(self, **kwargs) -> PipelineSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated PipelineSettings instance
        """
        if self._settings is None:
            self.load()

        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
