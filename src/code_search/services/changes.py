"""
Changesets: which files of a repository must be (re)indexed or removed.

A changeset is computed per commit range. Without a previous commit every
blob of the target tree is an update (genesis changeset); otherwise the diff
between the two commits decides. Indexers read blobs through the BlobSource
protocol, for which GitRepository is the git-backed implementation.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from ..utils.git_runner import run_git_command

logger = logging.getLogger(__name__)


@dataclass
class FileUpdate:
    """A file whose content must be (re)indexed."""

    filename: str
    blob_sha: str


@dataclass
class RepoChanges:
    """Updates and removals to apply to the index for one commit."""

    updates: List[FileUpdate] = field(default_factory=list)
    removed_filenames: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.updates and not self.removed_filenames


class BlobSource(Protocol):
    """Read access to file blobs of a repository."""

    def blob_size(self, blob_sha: str) -> int:
        ...

    def blob_content(self, blob_sha: str) -> bytes:
        ...


class GitRepository:
    """Git-backed changeset producer and blob source for one repository."""

    def __init__(self, repo_path: Path, timeout: Optional[float] = 60.0):
        self.repo_path = Path(repo_path)
        self.timeout = timeout

    def _git(self, *args: str) -> str:
        result = run_git_command(
            ["git", *args], cwd=self.repo_path, timeout=self.timeout
        )
        return str(result.stdout)

    def resolve_commit(self, ref: str) -> str:
        """Resolve a ref (branch, tag, HEAD) to a full commit SHA."""
        return self._git("rev-parse", "--verify", f"{ref}^{{commit}}").strip()

    def blob_size(self, blob_sha: str) -> int:
        """Return the size in bytes of a blob without reading it."""
        output = self._git("cat-file", "-s", blob_sha).strip()
        try:
            return int(output)
        except ValueError as e:
            raise ValueError(f"Misformatted git cat-file output: {output!r}") from e

    def blob_content(self, blob_sha: str) -> bytes:
        """Return the raw content of a blob."""
        result = run_git_command(
            ["git", "cat-file", "blob", blob_sha],
            cwd=self.repo_path,
            text=False,
            timeout=self.timeout,
        )
        return bytes(result.stdout)

    def list_blobs(self, sha: str) -> Dict[str, str]:
        """Map every file path in the tree of ``sha`` to its blob SHA.

        Submodule entries are not blobs and are left out.
        """
        output = self._git("ls-tree", "-r", "-z", "--full-tree", sha)
        blobs: Dict[str, str] = {}
        for entry in output.split("\0"):
            if not entry:
                continue
            meta, _, path = entry.partition("\t")
            parts = meta.split()
            if len(parts) != 3:
                logger.debug(f"Skipping malformed ls-tree entry: {entry!r}")
                continue
            _, object_type, object_sha = parts
            if object_type == "blob":
                blobs[path] = object_sha
        return blobs

    def get_changes(self, sha: str, from_sha: Optional[str] = None) -> RepoChanges:
        """
        Compute the changeset that brings an index from ``from_sha`` to ``sha``.

        Args:
            sha: Commit being indexed
            from_sha: Commit the index currently reflects, None for a full index

        Returns:
            RepoChanges with updates (path and blob SHA) and removed paths
        """
        blobs = self.list_blobs(sha)

        if not from_sha:
            changes = RepoChanges(
                updates=[
                    FileUpdate(filename=path, blob_sha=blob)
                    for path, blob in blobs.items()
                ]
            )
            logger.info(f"Genesis changeset for {sha}: {len(changes.updates)} files")
            return changes

        output = self._git(
            "diff", "--name-status", "--no-renames", "-z", from_sha, sha
        )
        fields = output.split("\0")
        changes = RepoChanges()

        i = 0
        while i < len(fields):
            status = fields[i]
            if not status:
                i += 1
                continue

            # Copies and renames carry two paths.
            if status[0] in ("R", "C"):
                old_path, new_path = fields[i + 1], fields[i + 2]
                i += 3
                if status[0] == "R":
                    changes.removed_filenames.append(old_path)
                if new_path in blobs:
                    changes.updates.append(FileUpdate(new_path, blobs[new_path]))
                continue

            path = fields[i + 1]
            i += 2
            if status[0] == "D":
                changes.removed_filenames.append(path)
            elif path in blobs:
                changes.updates.append(FileUpdate(filename=path, blob_sha=blobs[path]))

        logger.info(
            f"Changeset {from_sha[:8]}..{sha[:8]}: "
            f"~{len(changes.updates)} -{len(changes.removed_filenames)}"
        )
        return changes
