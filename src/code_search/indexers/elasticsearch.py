"""Elasticsearch code search backend."""

import copy
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..search.models import SearchResult, SearchResultLanguages, SearchResultPosition
from ..services.changes import BlobSource, RepoChanges
from ..services.language_mapper import LanguageClassifier
from .base import BulkIndexError, Indexer, IndexerError, SearchReturn

logger = logging.getLogger(__name__)

DEFAULT_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "repo_id": {"type": "long", "index": True},
            "content": {"type": "text", "index": True},
            "commit_id": {"type": "keyword", "index": True},
            "language": {"type": "keyword", "index": True},
            "updated_at": {"type": "long", "index": True},
        }
    }
}


def parse_highlight_fragment(fragment: str) -> List[SearchResultPosition]:
    """
    Parse one highlight fragment returned with ``return_offsets``.

    A fragment reads ``<start>:<s1>-<e1>,<s2>-<e2>,...:<end>`` where every
    ``s-e`` pair is a character-offset span into the field. Fragments and
    pairs with the wrong number of fields or non-numeric offsets are skipped.
    """
    fields = [f for f in fragment.split(":") if f]
    if len(fields) != 3:
        logger.debug(f"Skipping malformed highlight fragment: {fragment!r}")
        return []

    positions = []
    for pair in (p for p in fields[1].split(",") if p):
        bounds = [b for b in pair.split("-") if b]
        if len(bounds) != 2:
            continue
        try:
            start, end = int(bounds[0]), int(bounds[1])
        except ValueError:
            continue
        positions.append(SearchResultPosition(start_index=start, end_index=end))

    return positions


class ElasticSearchIndexer(Indexer):
    """Code search backend storing one document per file in an Elasticsearch index."""

    def __init__(
        self,
        url: str,
        index_name: str,
        timeout: float = 30.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        fuzziness: str = "AUTO",
        language_facet_size: int = 10,
        facets_ignore_language_filter: bool = True,
        max_file_size: int = 1048576,
        classifier: Optional[LanguageClassifier] = None,
    ):
        """
        Initialize the Elasticsearch backend.

        Args:
            url: Base URL of the cluster
            index_name: Name of the index holding code documents
            timeout: Request timeout in seconds
            username: Optional basic auth user
            password: Optional basic auth password
            fuzziness: query_string fuzziness
            language_facet_size: Maximum number of language buckets
            facets_ignore_language_filter: Compute facets without the language filter
            max_file_size: Blobs larger than this many bytes are deleted from the index
            classifier: Language and text classifier
        """
        super().__init__(max_file_size=max_file_size, classifier=classifier)
        self.index_name = index_name
        self.fuzziness = fuzziness
        self.language_facet_size = language_facet_size
        self.facets_ignore_language_filter = facets_ignore_language_filter

        auth = (username, password or "") if username else None
        self.client = httpx.Client(
            base_url=url.rstrip("/"),
            timeout=timeout,
            auth=auth,
            headers={"Content-Type": "application/json"},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.error(f"Elasticsearch {method} {path} failed: {e}")
            raise

    def init(self) -> bool:
        """Create the index with the code mapping unless it already exists."""
        response = self.client.head(f"/{self.index_name}")
        if response.status_code == 200:
            logger.debug(f"Elasticsearch index {self.index_name} already exists")
            return True
        if response.status_code != 404:
            response.raise_for_status()

        created = self._request(
            "PUT", f"/{self.index_name}", json=DEFAULT_MAPPING
        ).json()
        if not created.get("acknowledged"):
            raise IndexerError("init failed")

        logger.info(f"Created Elasticsearch index {self.index_name}")
        return False

    def open(self) -> None:
        """Check that the index exists without creating it."""
        response = self.client.head(f"/{self.index_name}")
        if response.status_code == 404:
            raise IndexerError(
                f"Elasticsearch index {self.index_name} does not exist. "
                "Run 'code-search init' first."
            )
        response.raise_for_status()

    def index(
        self, repo_id: int, sha: str, changes: RepoChanges, blobs: BlobSource
    ) -> None:
        """Submit all upserts and deletes of one commit in a single bulk call."""
        operations = self.build_operations(repo_id, sha, changes, blobs)
        if not operations:
            return

        lines = []
        for operation in operations:
            meta = {"_index": self.index_name, "_id": operation.doc_id}
            if operation.is_delete:
                lines.append(json.dumps({"delete": meta}))
            else:
                lines.append(json.dumps({"index": meta}))
                lines.append(json.dumps(operation.document))
        body = "\n".join(lines) + "\n"

        result = self._request(
            "POST",
            f"/{self.index_name}/_bulk",
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/x-ndjson"},
        ).json()

        if result.get("errors"):
            failed = []
            for item in result.get("items", []):
                for action in item.values():
                    if action.get("error"):
                        failed.append(str(action.get("_id")))
            raise BulkIndexError(
                f"Bulk indexing of {sha} for repository {repo_id} failed "
                f"for {len(failed)} of {len(operations)} documents",
                failed_ids=failed,
            )

        logger.info(
            f"Indexed commit {sha[:8]} of repository {repo_id}: "
            f"{len(operations)} operations"
        )

    def delete(self, repo_id: int) -> None:
        """Delete every document of a repository."""
        self._request(
            "POST",
            f"/{self.index_name}/_delete_by_query",
            json={"query": {"terms": {"repo_id": [repo_id]}}},
        )
        logger.info(f"Deleted repository {repo_id} from {self.index_name}")

    def _search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = self._request(
            "POST", f"/{self.index_name}/_search", json=body
        ).json()
        return result

    def _language_aggregation(self) -> Dict[str, Any]:
        return {
            "language": {
                "terms": {
                    "field": "language",
                    "size": self.language_facet_size,
                    "order": {"_count": "desc"},
                }
            }
        }

    def search(
        self,
        repo_ids: List[int],
        language: str,
        keyword: str,
        page: int,
        page_size: int,
    ) -> SearchReturn:
        """Search file contents, returning a page of hits and language facets."""
        must: List[Dict[str, Any]] = [
            {
                "query_string": {
                    "query": keyword,
                    "fields": ["content"],
                    "fuzziness": self.fuzziness,
                    "analyze_wildcard": True,
                    "lenient": True,
                }
            }
        ]
        if repo_ids:
            must.append({"terms": {"repo_id": list(repo_ids)}})
        query = {"bool": {"must": must}}

        start = (page - 1) * page_size if page > 0 else 0
        page_body: Dict[str, Any] = {
            "query": query,
            "highlight": {
                "fields": {
                    "content": {
                        "type": "experimental",
                        "options": {"return_offsets": True},
                    }
                }
            },
            "sort": [{"repo_id": {"order": "asc"}}],
            "from": start,
            "size": page_size,
            "track_total_hits": True,
        }

        if not language:
            page_body["aggs"] = self._language_aggregation()
            result = self._search(page_body)
            total, hits = self._convert_hits(result)
            return total, hits, self._extract_facets(result)

        filtered_query = copy.deepcopy(query)
        filtered_query["bool"]["must"].append({"match": {"language": language}})
        page_body["query"] = filtered_query

        if not self.facets_ignore_language_filter:
            page_body["aggs"] = self._language_aggregation()
            result = self._search(page_body)
            total, hits = self._convert_hits(result)
            return total, hits, self._extract_facets(result)

        # Facets only; no hits needed.
        count_result = self._search(
            {"query": query, "aggs": self._language_aggregation(), "size": 0}
        )
        result = self._search(page_body)
        total, hits = self._convert_hits(result)
        return total, hits, self._extract_facets(count_result)

    def _convert_hits(self, result: Dict[str, Any]) -> Tuple[int, List[SearchResult]]:
        hits_section = result.get("hits", {})
        total = hits_section.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        hits = []
        for hit in hits_section.get("hits", []):
            positions: List[SearchResultPosition] = []
            for fragment in hit.get("highlight", {}).get("content", []):
                positions.extend(parse_highlight_fragment(fragment))

            search_result = self.make_search_result(
                str(hit.get("_id", "")), hit.get("_source", {}), positions
            )
            if search_result is not None:
                hits.append(search_result)

        return int(total), hits

    def _extract_facets(self, result: Dict[str, Any]) -> List[SearchResultLanguages]:
        buckets = result.get("aggregations", {}).get("language", {}).get("buckets", [])
        return self.make_facets(
            (str(bucket["key"]), int(bucket["doc_count"])) for bucket in buckets
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()
