"""
Shared pytest fixtures for Code Search tests.

Provides an in-memory blob source for indexer tests and a helper for
building real git repositories in temporary directories.
"""

import hashlib
import subprocess
from pathlib import Path
from typing import Dict

import pytest

from code_search.services.changes import FileUpdate, RepoChanges


class FakeBlobSource:
    """In-memory BlobSource keyed by blob SHA."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.content_reads = 0

    def add(self, content: bytes) -> str:
        blob_sha = hashlib.sha1(content).hexdigest()
        self.blobs[blob_sha] = content
        return blob_sha

    def blob_size(self, blob_sha: str) -> int:
        return len(self.blobs[blob_sha])

    def blob_content(self, blob_sha: str) -> bytes:
        self.content_reads += 1
        return self.blobs[blob_sha]


def make_changes(
    blobs: FakeBlobSource, files: Dict[str, bytes], removed=None
) -> RepoChanges:
    """Build a changeset that updates ``files`` and removes ``removed``."""
    return RepoChanges(
        updates=[
            FileUpdate(filename=name, blob_sha=blobs.add(content))
            for name, content in files.items()
        ],
        removed_filenames=list(removed or []),
    )


def git(repo: Path, *args: str) -> str:
    """Run a git command in ``repo`` and return its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


def commit_all(repo: Path, message: str) -> str:
    """Stage everything, commit and return the new commit SHA."""
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def blob_source() -> FakeBlobSource:
    return FakeBlobSource()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """An empty git repository with a committer identity configured."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")
    return repo
