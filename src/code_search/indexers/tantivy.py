"""
Tantivy code search backend.

Keeps an embedded Tantivy index on the local filesystem, one document per
file, and answers the same queries as the Elasticsearch backend: fuzzy
keyword match on content, optional repository scoping, optional language
filter, per-language facets and character-offset match positions.
"""

import logging
import re
import threading
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional

from ..search.models import SearchResultLanguages, SearchResultPosition
from ..services.changes import BlobSource, RepoChanges
from ..services.language_mapper import LanguageClassifier
from .base import Indexer, IndexerError, SearchReturn

if TYPE_CHECKING:
    from tantivy import Index, Schema  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Tantivy's default tokenizer splits on anything that is not alphanumeric.
TOKEN_RE = re.compile(r"[^\W_]+")


def _edit_distance(a: str, b: str, limit: int) -> int:
    """Optimal string alignment distance, transpositions cost one.

    Returns ``limit + 1`` as soon as the distance is known to exceed ``limit``.
    """
    if abs(len(a) - len(b)) > limit:
        return limit + 1

    previous2: List[int] = []
    previous = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        current = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            current[j] = min(
                previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost
            )
            if (
                i > 1
                and j > 1
                and a[i - 1] == b[j - 2]
                and a[i - 2] == b[j - 1]
            ):
                current[j] = min(current[j], previous2[j - 2] + 1)
        if min(current) > limit:
            return limit + 1
        previous2, previous = previous, current
    return previous[-1]


def tokenize_keyword(keyword: str) -> List[str]:
    """Split a keyword into the lower-cased terms the index stores."""
    return [token.lower() for token in TOKEN_RE.findall(keyword)]


def find_match_positions(
    content: str, terms: List[str], edit_distance: int
) -> List[SearchResultPosition]:
    """Locate content tokens matching any term, as character-offset spans."""
    if not terms:
        return []

    positions = []
    for match in TOKEN_RE.finditer(content):
        token = match.group(0).lower()
        if any(_edit_distance(token, term, edit_distance) <= edit_distance for term in terms):
            positions.append(
                SearchResultPosition(start_index=match.start(), end_index=match.end())
            )
    return positions


class TantivyIndexer(Indexer):
    """
    Code search backend on an embedded Tantivy index.

    Thread Safety:
        The Tantivy writer is thread-safe at the Rust level, but a changeset is
        a delete-then-add sequence followed by a commit. The writer lock keeps
        each changeset's sequence and commit together.
    """

    def __init__(
        self,
        index_dir: Path,
        edit_distance: int = 1,
        language_facet_size: int = 10,
        facets_ignore_language_filter: bool = True,
        max_file_size: int = 1048576,
        classifier: Optional[LanguageClassifier] = None,
        heap_size: int = 128_000_000,
        num_threads: int = 0,
    ):
        """
        Initialize the Tantivy backend.

        Args:
            index_dir: Directory where the Tantivy index is stored
            edit_distance: Fuzzy matching tolerance for each keyword term
            language_facet_size: Maximum number of language facets
            facets_ignore_language_filter: Compute facets without the language filter
            max_file_size: Blobs larger than this many bytes are deleted from the index
            classifier: Language and text classifier
            heap_size: Writer heap size in bytes, shared by all writer threads
            num_threads: Writer threads, 0 picks one per CPU
        """
        super().__init__(max_file_size=max_file_size, classifier=classifier)
        self.index_dir = Path(index_dir)
        self.edit_distance = edit_distance
        self.language_facet_size = language_facet_size
        self.facets_ignore_language_filter = facets_ignore_language_filter
        self._heap_size = heap_size
        self._num_threads = num_threads
        self._index: Optional[Index] = None
        self._schema: Optional[Schema] = None
        self._writer: Optional[Any] = None
        self._lock = threading.Lock()

        try:
            import tantivy

            self._tantivy = tantivy
        except ImportError as e:
            logger.error("Tantivy library not installed")
            raise ImportError(
                "Tantivy is required for the embedded backend. "
                "Install it with: pip install tantivy"
            ) from e

    def _create_schema(self) -> None:
        """Create the Tantivy schema for code documents."""
        schema_builder = self._tantivy.SchemaBuilder()

        # id: "<repo_id>_<filename>", one raw term for deletes
        schema_builder.add_text_field("id", stored=True, tokenizer_name="raw")
        schema_builder.add_integer_field("repo_id", stored=True, indexed=True, fast=True)

        # content: tokenized for search, stored for rendering
        schema_builder.add_text_field("content", stored=True)

        schema_builder.add_text_field("commit_id", stored=True, tokenizer_name="raw")

        # language: stored for retrieval, facet for filtering
        schema_builder.add_text_field("language", stored=True, tokenizer_name="raw")
        schema_builder.add_facet_field("language_facet")

        schema_builder.add_integer_field("updated_at", stored=True, fast=True)

        self._schema = schema_builder.build()

    def init(self) -> bool:
        """Open the index, creating it first when the directory holds none.

        The writer is not taken here; readers never hold the directory lock.
        """
        existed = (self.index_dir / "meta.json").exists()
        if existed:
            self.open()
            return True

        self.index_dir.mkdir(parents=True, exist_ok=True)
        self._create_schema()
        self._index = self._tantivy.Index(self._schema, str(self.index_dir))
        logger.info(f"Created Tantivy index at {self.index_dir}")
        return False

    def open(self) -> None:
        """Open an existing index for searching."""
        if not (self.index_dir / "meta.json").exists():
            raise IndexerError(
                f"No Tantivy index at {self.index_dir}. Run 'code-search init' first."
            )
        self._index = self._tantivy.Index.open(str(self.index_dir))
        self._schema = self._index.schema
        logger.info(f"Opened existing Tantivy index at {self.index_dir}")

    def _require_writer(self) -> Any:
        """Return the index writer, acquiring the directory lock on first use."""
        if self._index is None:
            raise RuntimeError("Index not initialized. Call init() first.")
        with self._lock:
            if self._writer is None:
                self._writer = self._index.writer(self._heap_size, self._num_threads)
        return self._writer

    def _term_query(self, field: str, value: Any) -> Any:
        return self._tantivy.Query.term_query(self._schema, field, value)

    def index(
        self, repo_id: int, sha: str, changes: RepoChanges, blobs: BlobSource
    ) -> None:
        """Apply a changeset as a single commit."""
        writer = self._require_writer()
        operations = self.build_operations(repo_id, sha, changes, blobs)
        if not operations:
            return

        with self._lock:
            try:
                for operation in operations:
                    writer.delete_documents_by_query(
                        self._term_query("id", operation.doc_id)
                    )
                    if operation.document is None:
                        continue

                    document = operation.document
                    doc = self._tantivy.Document()
                    doc.add_text("id", operation.doc_id)
                    doc.add_integer("repo_id", int(document["repo_id"]))
                    doc.add_text("content", document["content"])
                    doc.add_text("commit_id", document["commit_id"])
                    doc.add_text("language", document["language"])
                    doc.add_facet(
                        "language_facet",
                        self._tantivy.Facet.from_string(f"/{document['language']}"),
                    )
                    doc.add_integer("updated_at", int(document["updated_at"]))
                    writer.add_document(doc)

                writer.commit()
            except Exception as e:
                logger.error(f"Failed to index commit {sha} of repository {repo_id}: {e}")
                writer.rollback()
                raise

        logger.info(
            f"Indexed commit {sha[:8]} of repository {repo_id}: "
            f"{len(operations)} operations"
        )

    def delete(self, repo_id: int) -> None:
        """Delete every document of a repository."""
        writer = self._require_writer()
        with self._lock:
            writer.delete_documents_by_query(self._term_query("repo_id", repo_id))
            writer.commit()
        logger.info(f"Deleted repository {repo_id} from Tantivy index")

    def _build_query(self, repo_ids: List[int], terms: List[str], language: str) -> Any:
        tantivy = self._tantivy
        Query = tantivy.Query

        subqueries = [
            (
                tantivy.Occur.Must,
                Query.fuzzy_term_query(
                    self._schema,
                    "content",
                    term,
                    distance=self.edit_distance,
                    transposition_cost_one=True,
                ),
            )
            for term in terms
        ]

        if repo_ids:
            repo_query = Query.boolean_query(
                [
                    (tantivy.Occur.Should, self._term_query("repo_id", repo_id))
                    for repo_id in repo_ids
                ]
            )
            subqueries.append((tantivy.Occur.Must, repo_query))

        if language:
            subqueries.append(
                (
                    tantivy.Occur.Must,
                    self._term_query(
                        "language_facet", tantivy.Facet.from_string(f"/{language}")
                    ),
                )
            )

        return Query.boolean_query(subqueries)

    def _count_languages(self, searcher: Any, query: Any) -> List[SearchResultLanguages]:
        num_docs = int(searcher.num_docs)
        if num_docs == 0:
            return []

        counts: Counter = Counter()
        for _, address in searcher.search(query, num_docs).hits:
            doc = searcher.doc(address)
            counts[str(doc.get_first("language") or "")] += 1

        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return self.make_facets(ordered[: self.language_facet_size])

    def search(
        self,
        repo_ids: List[int],
        language: str,
        keyword: str,
        page: int,
        page_size: int,
    ) -> SearchReturn:
        """Search file contents, returning a page of hits and language facets."""
        if self._index is None:
            raise RuntimeError("Index not initialized. Call init() first.")

        terms = tokenize_keyword(keyword)
        if not terms:
            return 0, [], []

        self._index.reload()
        searcher = self._index.searcher()

        query = self._build_query(repo_ids, terms, language)
        if language and self.facets_ignore_language_filter:
            facets = self._count_languages(searcher, self._build_query(repo_ids, terms, ""))
        else:
            facets = self._count_languages(searcher, query)

        start = (page - 1) * page_size if page > 0 else 0
        result = searcher.search(query, max(page_size, 1), count=True, offset=start)

        hits = []
        for _, address in result.hits[: max(page_size, 0)]:
            doc = searcher.doc(address)
            content = str(doc.get_first("content") or "")
            source = {
                "content": content,
                "commit_id": doc.get_first("commit_id") or "",
                "language": doc.get_first("language") or "",
                "updated_at": doc.get_first("updated_at") or 0,
            }
            search_result = self.make_search_result(
                str(doc.get_first("id") or ""),
                source,
                find_match_positions(content, terms, self.edit_distance),
            )
            if search_result is not None:
                hits.append(search_result)

        return int(result.count), hits, facets

    def close(self) -> None:
        """Commit pending changes and release the writer."""
        if self._writer is not None:
            with self._lock:
                try:
                    self._writer.commit()
                except Exception as e:
                    logger.error(f"Failed to commit on close: {e}")
            self._writer = None

        self._index = None
        logger.info("Closed Tantivy index")
