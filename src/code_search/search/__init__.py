"""Search result model, offset reconciliation, windowing and rendering."""

from .models import Result, SearchResult, SearchResultLanguages, SearchResultPosition
from .service import CodeSearchService, perform_search

__all__ = [
    "Result",
    "SearchResult",
    "SearchResultLanguages",
    "SearchResultPosition",
    "CodeSearchService",
    "perform_search",
]
