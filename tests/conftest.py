"""Pytest configuration and shared fixtures for release pipeline tests."""

import hashlib
import json
import pytest
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Union

from release_pipeline.remote.exceptions import GitHubAPIError, GitHubNotFoundError
from release_pipeline.remote.models import (
    EntryType,
    ReleaseAsset,
    ReleaseRecord,
    RepoRef,
    TreeEntry,
)


# Test constants
TEST_TOKEN = "ghp_" + "a" * 36
SOURCE_REPO = RepoRef("PraxiveSoftware", "browser")
RELEASE_REPO = RepoRef("PraxiveSoftware", "releases")


class FakeGitHub:
    """
    In-memory stand-in for GitHubClient.

    Trees are registered from nested dicts: bytes values become blobs,
    dict values become subtrees. Failures can be queued per call so tests
    can simulate rate limits and stale listings.

    Usage:
        fake = FakeGitHub()
        root = fake.add_tree({"package.json": b"{}", "src": {"index.js": b"x"}})
        fake.set_branch(SOURCE_REPO, "main", root)
    """

    def __init__(self):
        self.trees: Dict[str, List[TreeEntry]] = {}
        self.blobs: Dict[str, bytes] = {}
        self.branches: Dict[tuple, str] = {}
        self.releases: Dict[RepoRef, List[ReleaseRecord]] = defaultdict(list)
        self.tags: Dict[tuple, str] = {}
        self.uploads: List[tuple] = []
        self.calls: List[tuple] = []
        self._failures: Dict[tuple, List[Exception]] = defaultdict(list)
        self._next_id = 1000

    # Setup helpers

    def add_tree(self, structure: Dict[str, Union[bytes, dict]]) -> str:
        """Register a nested structure and return the root tree sha."""
        entries = []
        for name, value in structure.items():
            if isinstance(value, dict):
                sha = self.add_tree(value)
                entries.append(TreeEntry(path=name, type=EntryType.TREE, sha=sha))
            else:
                sha = "blob-" + hashlib.sha1(name.encode() + value).hexdigest()
                self.blobs[sha] = value
                entries.append(TreeEntry(path=name, type=EntryType.BLOB, sha=sha, size=len(value)))
        tree_sha = "tree-" + hashlib.sha1(
            json.dumps([(e.path, e.sha) for e in entries]).encode()
        ).hexdigest()
        self.trees[tree_sha] = entries
        return tree_sha

    def set_branch(self, repo: RepoRef, branch: str, sha: str) -> None:
        self.branches[(repo, branch)] = sha

    def add_release(self, repo: RepoRef, tag_name: str, assets: Optional[List[str]] = None) -> ReleaseRecord:
        release = ReleaseRecord(
            id=self._new_id(),
            tag_name=tag_name,
            name=tag_name,
            prerelease=True,
            assets=[self._asset(name, b"") for name in (assets or [])],
        )
        self.releases[repo].append(release)
        return release

    def fail(self, method: str, key: str, error: Exception, times: int = 1) -> None:
        """Queue an exception for the next calls of method with this key."""
        self._failures[(method, key)].extend([error] * times)

    def call_count(self, method: str, key: Optional[str] = None) -> int:
        return sum(
            1 for name, k in self.calls
            if name == method and (key is None or k == key)
        )

    # Internals

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _asset(self, name: str, data: bytes) -> ReleaseAsset:
        return ReleaseAsset(
            id=self._new_id(),
            name=name,
            size=len(data),
            content_type="application/octet-stream",
            download_url=f"https://example.com/{name}",
        )

    def _record(self, method: str, key: str) -> None:
        self.calls.append((method, key))
        queued = self._failures.get((method, key))
        if queued:
            raise queued.pop(0)

    # GitHubClient interface

    def resolve_branch_head(self, repo: RepoRef, branch: str) -> str:
        self._record("resolve_branch_head", f"{repo}@{branch}")
        try:
            return self.branches[(repo, branch)]
        except KeyError:
            raise GitHubNotFoundError("Not Found")

    def get_tree(self, repo: RepoRef, tree_sha: str) -> List[TreeEntry]:
        self._record("get_tree", tree_sha)
        try:
            return list(self.trees[tree_sha])
        except KeyError:
            raise GitHubNotFoundError("Not Found")

    def get_blob_content(self, repo: RepoRef, blob_sha: str) -> bytes:
        self._record("get_blob_content", blob_sha)
        try:
            return self.blobs[blob_sha]
        except KeyError:
            raise GitHubNotFoundError("Not Found")

    def list_releases(self, repo: RepoRef) -> List[ReleaseRecord]:
        self._record("list_releases", str(repo))
        return list(self.releases[repo])

    def create_release(self, repo, tag_name, prerelease=True, name=None, target_commitish=None):
        self._record("create_release", tag_name)
        release = ReleaseRecord(
            id=self._new_id(),
            tag_name=tag_name,
            name=name or tag_name,
            prerelease=prerelease,
        )
        self.releases[repo].append(release)
        return release

    def upload_asset(self, repo, release, file_name, data, content_type=None):
        self._record("upload_asset", file_name)
        release_id = release.id if isinstance(release, ReleaseRecord) else release
        stored = next(r for r in self.releases[repo] if r.id == release_id)
        if stored.has_asset(file_name):
            raise GitHubAPIError(422, "Validation Failed: already_exists")
        asset = self._asset(file_name, data)
        stored.assets.append(asset)
        self.uploads.append((release_id, file_name, data))
        return asset

    def create_tag_ref(self, repo, tag_name, commit_sha):
        self._record("create_tag_ref", tag_name)
        self.tags[(repo, tag_name)] = commit_sha


def snapshot(root: Path) -> Dict[str, Optional[bytes]]:
    """Map every path below root to its bytes (None for directories)."""
    result = {}
    for path in sorted(root.rglob("*")):
        key = path.relative_to(root).as_posix()
        result[key] = None if path.is_dir() else path.read_bytes()
    return result


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Provide an empty in-memory GitHub."""
    return FakeGitHub()


@pytest.fixture
def take_snapshot():
    """Provide the directory snapshot helper."""
    return snapshot


@pytest.fixture
def sleep_log():
    """Record requested sleeps instead of blocking."""
    calls: List[float] = []
    return calls


@pytest.fixture
def fake_sleep(sleep_log):
    """Sleep function that only records its argument."""
    return sleep_log.append


@pytest.fixture
def built_source(tmp_path: Path) -> Path:
    """Create a source tree as it looks after a successful Windows package step."""
    source = tmp_path / "browser"
    output = source / "dist" / "nsis-web"
    output.mkdir(parents=True)
    (source / "package.json").write_text(json.dumps({"name": "browser", "version": "1.2.3"}))
    (output / "Browser-Setup-1.2.3.exe").write_bytes(b"MZ" + b"\x00" * 64)
    (output / "browser-1.2.3-x64.nsis.7z").write_bytes(b"7z\xbc\xaf")
    (output / "latest.yml").write_text("version: 1.2.3\n")
    return source
