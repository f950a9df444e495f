"""Data model shared by the indexers and the search pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SearchResultPosition:
    """Half-open ``[start_index, end_index)`` span of a match inside file content."""

    start_index: int
    end_index: int


@dataclass
class SearchResult:
    """One matching document as returned by an indexer.

    ``positions`` are UTF-8 byte offsets into ``content``, ordered by start.
    """

    repo_id: int
    filename: str
    commit_id: str
    content: str
    updated_unix: int
    language: str
    color: str
    positions: List[SearchResultPosition] = field(default_factory=list)


@dataclass
class SearchResultLanguages:
    """Per-language match count for the current query."""

    language: str
    color: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"language": self.language, "color": self.color, "count": self.count}


@dataclass
class Result:
    """Rendered, display-ready projection of a SearchResult."""

    repo_id: int
    filename: str
    commit_id: str
    updated_unix: int
    language: str
    color: str
    highlight_class: str
    line_numbers: List[int]
    formatted_lines: str

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-serializable shape of this result."""
        return {
            "repo_id": self.repo_id,
            "filename": self.filename,
            "commit_id": self.commit_id,
            "updated_unix": self.updated_unix,
            "language": self.language,
            "color": self.color,
            "highlight_class": self.highlight_class,
            "line_numbers": list(self.line_numbers),
            "formatted_lines": self.formatted_lines,
        }
