"""Pipeline exceptions for the release pipeline.

Custom exception hierarchy for configuration, build and artifact
failures. Remote host errors live in release_pipeline.remote.exceptions
and share the same base class.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for all release pipeline errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class ConfigurationError(PipelineError):
    """Required configuration (usually the access token) is missing or invalid."""
    pass


class BuildStepFailed(PipelineError):
    """An external build step exited with a non-zero status."""

    def __init__(
        self,
        step_name: str,
        returncode: int,
        output: Optional[str] = None,
        original_error: Exception = None
    ):
        self.step_name = step_name
        self.returncode = returncode
        self.output = output or ""
        message = f"Build step '{step_name}' failed with exit code {returncode}"
        super().__init__(message, original_error)


class VersionDiscoveryError(PipelineError):
    """The build metadata file could not be read or has no version."""

    def __init__(self, path: str, reason: str, original_error: Exception = None):
        self.path = path
        message = f"Cannot discover version from '{path}': {reason}"
        super().__init__(message, original_error)


class ArtifactDirectoryMissing(PipelineError):
    """The packaging output directory does not exist."""

    def __init__(self, path: str):
        self.path = path
        message = (
            f"Directory not found: {path}. The package step may have failed "
            f"or it may not have created this directory as expected"
        )
        super().__init__(message)
