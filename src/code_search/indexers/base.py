"""Abstract base class for full-text search backends.

Defines the contract every code search backend implements, plus the pieces
backends must agree on so that they are interchangeable:
- document id encoding of ``(repo_id, filename)``
- the translation of a changeset into upsert and delete operations
- the conversion of a stored document and its match offsets into a SearchResult
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..search.models import SearchResult, SearchResultLanguages, SearchResultPosition
from ..search.offsets import reconcile_positions
from ..services.changes import BlobSource, RepoChanges
from ..services.language_mapper import LanguageClassifier, decode_content, is_text

logger = logging.getLogger(__name__)

ID_SEPARATOR = "_"

# Lone surrogates survive JSON decoding but cannot be encoded as UTF-8.
_SURROGATE_RE = re.compile("[\ud800-\udfff]")

SearchReturn = Tuple[int, List[SearchResult], List[SearchResultLanguages]]


class IndexerError(Exception):
    """Base exception for indexer errors."""

    pass


class BulkIndexError(IndexerError):
    """Raised when a bulk submission was only partially applied."""

    def __init__(self, message: str, failed_ids: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_ids = failed_ids or []


def filename_indexer_id(repo_id: int, filename: str) -> str:
    """Encode ``(repo_id, filename)`` as a single document id."""
    return f"{repo_id}{ID_SEPARATOR}{filename}"


def parse_indexer_id(doc_id: str) -> Tuple[int, str]:
    """Decode a document id produced by filename_indexer_id.

    Raises:
        ValueError: If the id does not carry a numeric repository id
    """
    repo_part, separator, filename = doc_id.partition(ID_SEPARATOR)
    if not separator:
        raise ValueError(f"Invalid indexer id: {doc_id!r}")
    return int(repo_part), filename


@dataclass
class IndexOperation:
    """A single upsert (``document`` set) or delete (``document`` None)."""

    doc_id: str
    document: Optional[Dict[str, Any]] = None

    @property
    def is_delete(self) -> bool:
        return self.document is None


class Indexer(ABC):
    """Abstract interface for code search backends.

    Implementations:
    - ElasticSearchIndexer: remote Elasticsearch cluster over HTTP
    - TantivyIndexer: embedded Tantivy index on the local filesystem

    Callers only hold an Indexer; a backend is constructed once and reused for
    the process lifetime, then released with close().
    """

    def __init__(
        self,
        max_file_size: int = 1048576,
        classifier: Optional[LanguageClassifier] = None,
    ):
        """Initialize shared indexing settings.

        Args:
            max_file_size: Blobs larger than this many bytes are deleted from the index
            classifier: Language and text classifier (default: LanguageClassifier())
        """
        self.max_file_size = max_file_size
        self.classifier = classifier or LanguageClassifier()

    @abstractmethod
    def init(self) -> bool:
        """Create the index if missing.

        Returns:
            True if the index already existed, False if it was just created
        """
        pass

    @abstractmethod
    def open(self) -> None:
        """Attach to an existing index for searching, never creating it.

        Raises:
            IndexerError: If the index does not exist
        """
        pass

    @abstractmethod
    def index(
        self, repo_id: int, sha: str, changes: RepoChanges, blobs: BlobSource
    ) -> None:
        """Apply a changeset for one commit as a single batch.

        Safe to call repeatedly for the same commit: every document is
        overwritten, never duplicated.

        Args:
            repo_id: Repository the changes belong to
            sha: Commit being indexed
            changes: Updated and removed files
            blobs: Source of blob sizes and contents
        """
        pass

    @abstractmethod
    def delete(self, repo_id: int) -> None:
        """Remove every document of a repository."""
        pass

    @abstractmethod
    def search(
        self,
        repo_ids: List[int],
        language: str,
        keyword: str,
        page: int,
        page_size: int,
    ) -> SearchReturn:
        """Search file contents.

        Args:
            repo_ids: Repositories to search, empty for all
            language: Language filter, empty for none (facets are still returned)
            keyword: Text to match against file contents
            page: 1-based page number
            page_size: Results per page

        Returns:
            Tuple of (total hits, page of results, language facets)
        """
        pass

    def close(self) -> None:
        """Release backend resources (optional operation)."""
        # Default implementation: no-op
        return None

    def build_operations(
        self, repo_id: int, sha: str, changes: RepoChanges, blobs: BlobSource
    ) -> List[IndexOperation]:
        """Translate a changeset into upsert and delete operations.

        Oversized blobs become deletes without being read; non-text blobs are
        skipped since they were never indexed.
        """
        operations: List[IndexOperation] = []
        now = int(time.time())

        for update in changes.updates:
            doc_id = filename_indexer_id(repo_id, update.filename)

            size = blobs.blob_size(update.blob_sha)
            if size > self.max_file_size:
                logger.debug(
                    f"Removing {update.filename} from index: {size} bytes exceeds "
                    f"max file size {self.max_file_size}"
                )
                operations.append(IndexOperation(doc_id=doc_id))
                continue

            content = blobs.blob_content(update.blob_sha)
            if not is_text(content):
                logger.debug(f"Skipping non-text file {update.filename}")
                continue

            operations.append(
                IndexOperation(
                    doc_id=doc_id,
                    document={
                        "repo_id": repo_id,
                        "content": decode_content(content),
                        "commit_id": sha,
                        "language": self.classifier.get_code_language(
                            update.filename, content
                        ),
                        "updated_at": now,
                    },
                )
            )

        for filename in changes.removed_filenames:
            operations.append(
                IndexOperation(doc_id=filename_indexer_id(repo_id, filename))
            )

        return operations

    def make_search_result(
        self,
        doc_id: str,
        source: Dict[str, Any],
        char_positions: Iterable[SearchResultPosition],
    ) -> Optional[SearchResult]:
        """Build a SearchResult from a stored document and character-offset spans.

        Returns:
            The result with byte-offset positions sorted by start, or None when
            no span survives reconciliation
        """
        try:
            repo_id, filename = parse_indexer_id(doc_id)
        except ValueError as e:
            logger.warning(f"Skipping hit with unparseable id: {e}")
            return None

        # One replacement character per surrogate keeps character offsets aligned.
        content = _SURROGATE_RE.sub("\ufffd", str(source.get("content", "")))
        positions = reconcile_positions(content, char_positions)
        if not positions:
            logger.debug(f"Skipping {doc_id}: no usable match positions")
            return None
        positions.sort(key=lambda p: (p.start_index, p.end_index))

        language = str(source.get("language", ""))
        return SearchResult(
            repo_id=repo_id,
            filename=filename,
            commit_id=str(source.get("commit_id", "")),
            content=content,
            updated_unix=int(source.get("updated_at", 0)),
            language=language,
            color=self.classifier.get_color(language),
            positions=positions,
        )

    def make_facets(
        self, buckets: Iterable[Tuple[str, int]]
    ) -> List[SearchResultLanguages]:
        """Build language facets from ``(language, count)`` buckets."""
        return [
            SearchResultLanguages(
                language=language,
                color=self.classifier.get_color(language),
                count=count,
            )
            for language, count in buckets
        ]
