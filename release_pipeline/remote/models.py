"""Data models for GitHub API objects used by the release pipeline.

Trees, releases and release assets are parsed from API responses into
dataclasses so the rest of the pipeline never handles raw JSON.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from release_pipeline.utils.validators import validate_repo_slug


class EntryType(Enum):
    """Type of a node in a git tree listing."""
    TREE = "tree"
    BLOB = "blob"
    COMMIT = "commit"  # submodule link


@dataclass(frozen=True)
class RepoRef:
    """Owner/name pair identifying a repository."""
    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, slug: str) -> "RepoRef":
        """
        Parse an "owner/name" slug.

        Args:
            slug: Repository slug

        Returns:
            RepoRef instance

        Raises:
            ValueError: If the slug is not of the form owner/name
        """
        is_valid, error = validate_repo_slug(slug)
        if not is_valid:
            raise ValueError(error)
        owner, name = slug.strip().split("/")
        return cls(owner=owner, name=name)


@dataclass(frozen=True)
class TreeEntry:
    """One node of a remote tree listing."""
    path: str
    type: EntryType
    sha: str
    size: Optional[int] = None

    @property
    def is_tree(self) -> bool:
        return self.type == EntryType.TREE

    @property
    def is_blob(self) -> bool:
        return self.type == EntryType.BLOB

    @classmethod
    def from_api_response(cls, data: dict) -> "TreeEntry":
        """Create TreeEntry from a git trees API item."""
        return cls(
            path=data.get("path", ""),
            type=EntryType(data.get("type", "blob")),
            sha=data.get("sha", ""),
            size=data.get("size"),
        )


@dataclass
class ReleaseAsset:
    """A binary asset attached to a release."""
    id: int
    name: str
    size: int
    content_type: str
    download_url: str

    @classmethod
    def from_api_response(cls, data: dict) -> "ReleaseAsset":
        """Create ReleaseAsset from GitHub API response."""
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            size=data.get("size", 0),
            content_type=data.get("content_type", ""),
            download_url=data.get("browser_download_url", ""),
        )


@dataclass
class ReleaseRecord:
    """A GitHub release as seen by the pipeline."""
    id: int
    tag_name: str
    name: str = ""
    prerelease: bool = True
    draft: bool = False
    upload_url: str = ""
    html_url: str = ""
    assets: List[ReleaseAsset] = field(default_factory=list)

    @property
    def asset_names(self) -> List[str]:
        """Names of assets already attached to the release."""
        return [asset.name for asset in self.assets]

    def has_asset(self, name: str) -> bool:
        """Check if an asset with this name is already attached."""
        return name in self.asset_names

    @classmethod
    def from_api_response(cls, data: dict) -> "ReleaseRecord":
        """Create ReleaseRecord from GitHub API response."""
        assets = [
            ReleaseAsset.from_api_response(a)
            for a in data.get("assets", [])
        ]

        return cls(
            id=data.get("id", 0),
            tag_name=data.get("tag_name", ""),
            name=data.get("name") or "",
            prerelease=data.get("prerelease", False),
            draft=data.get("draft", False),
            upload_url=data.get("upload_url", ""),
            html_url=data.get("html_url", ""),
            assets=assets,
        )
