"""Input validators for the release pipeline.

Provides validation functions for repository slugs, branch names,
release versions, tree entry paths and numeric settings.
"""

import re
from pathlib import PurePosixPath
from typing import Optional, Tuple


# GitHub owner and repository names (simplified)
REPO_PART_PATTERN = re.compile(r'^[A-Za-z0-9](?:[A-Za-z0-9._-]{0,99})$')

# Semantic version, optional pre-release and build metadata
SEMVER_PATTERN = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$'
)

# Characters git refuses in ref names
INVALID_REF_CHARS = re.compile(r'[\s~^:?*\[\\]|\.\.|@\{')


def validate_repo_slug(slug: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an "owner/name" repository slug.

    Args:
        slug: Repository slug to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not slug or not slug.strip():
        return False, "Repository is required"

    parts = slug.strip().split("/")
    if len(parts) != 2:
        return False, f"Repository must be in owner/name form, got {slug}"

    for part in parts:
        if not REPO_PART_PATTERN.match(part):
            return False, f"Invalid repository name component: '{part}'"

    return True, None


def validate_branch_name(branch: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a git branch name.

    Args:
        branch: Branch name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not branch or not branch.strip():
        return False, "Branch name is required"

    if branch.startswith("/") or branch.endswith("/") or branch.endswith(".lock"):
        return False, f"Invalid branch name: {branch}"

    if INVALID_REF_CHARS.search(branch):
        return False, f"Branch name contains invalid characters: {branch}"

    return True, None


def validate_version(version: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a semantic version string (without a "v" prefix).

    Args:
        version: Version string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not version or not str(version).strip():
        return False, "Version is required"

    if SEMVER_PATTERN.match(str(version).strip()):
        return True, None

    return False, f"Invalid semantic version: {version}"


def validate_timeout(timeout: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a timeout value in seconds.

    Args:
        timeout: Timeout in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(timeout, int):
        try:
            timeout = int(timeout)
        except (ValueError, TypeError):
            return False, "Timeout must be a number"

    if timeout < 5 or timeout > 300:
        return False, f"Timeout must be between 5 and 300 seconds, got {timeout}"

    return True, None


def validate_tree_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a tree entry path before it is joined to a local directory.

    Args:
        path: Entry path from a tree listing

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path or not path.strip():
        return False, "Tree entry path is empty"

    if path.startswith("/") or re.match(r'^[A-Za-z]:', path):
        return False, f"Tree entry path must be relative: {path}"

    # Check for path traversal attempts
    if ".." in PurePosixPath(path.replace("\\", "/")).parts:
        return False, f"Tree entry path cannot contain '..': {path}"

    return True, None
