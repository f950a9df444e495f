"""
Search orchestration: query a backend and render its hits for display.

Every raw hit is narrowed to a window spanning its first to its last match
plus surrounding context lines, then rendered into highlighted HTML lines.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..services.language_mapper import LanguageClassifier
from .models import Result, SearchResult, SearchResultLanguages
from .render import render_lines
from .snippet import DEFAULT_CONTEXT_LINES, compute_window

if TYPE_CHECKING:
    from ..indexers.base import Indexer

logger = logging.getLogger(__name__)

SearchResponse = Tuple[int, List[Result], List[SearchResultLanguages]]


class CodeSearchService:
    """Runs keyword searches against an Indexer and renders the results."""

    def __init__(
        self,
        indexer: "Indexer",
        context_lines: int = DEFAULT_CONTEXT_LINES,
        classifier: Optional[LanguageClassifier] = None,
    ):
        self.indexer = indexer
        self.context_lines = context_lines
        self.classifier = classifier or indexer.classifier

    def render_result(self, hit: SearchResult) -> Result:
        """Window and render a single hit, which must carry at least one span."""
        start = hit.positions[0].start_index
        end = max(p.end_index for p in hit.positions)

        window_start, window_end = compute_window(
            hit.content, start, end, self.context_lines
        )
        line_numbers, formatted = render_lines(
            hit.content, window_start, window_end, hit.positions
        )

        return Result(
            repo_id=hit.repo_id,
            filename=hit.filename,
            commit_id=hit.commit_id,
            updated_unix=hit.updated_unix,
            language=hit.language,
            color=hit.color,
            highlight_class=self.classifier.highlight_class(hit.filename),
            line_numbers=line_numbers,
            formatted_lines=formatted,
        )

    def perform_search(
        self,
        repo_ids: List[int],
        language: str,
        keyword: str,
        page: int,
        page_size: int,
    ) -> SearchResponse:
        """
        Search file contents and render every hit of the requested page.

        Args:
            repo_ids: Repositories to search, empty for all
            language: Language filter, empty for none
            keyword: Text to search for; empty returns no results
            page: 1-based page number
            page_size: Results per page

        Returns:
            Tuple of (total hits, rendered results, language facets)
        """
        if not keyword:
            return 0, [], []

        total, hits, languages = self.indexer.search(
            repo_ids, language, keyword, page, page_size
        )
        logger.debug(
            f"Search {keyword!r} page {page}: {len(hits)} of {total} hits"
        )
        results = []
        for hit in hits:
            if not hit.positions:
                logger.debug(f"Skipping {hit.repo_id}:{hit.filename}: no match positions")
                continue
            results.append(self.render_result(hit))
        return total, results, languages


def perform_search(
    indexer: "Indexer",
    repo_ids: List[int],
    language: str,
    keyword: str,
    page: int,
    page_size: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> SearchResponse:
    """Search with a one-off CodeSearchService."""
    service = CodeSearchService(indexer, context_lines=context_lines)
    return service.perform_search(repo_ids, language, keyword, page, page_size)
