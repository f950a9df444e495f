"""Unit tests for the search orchestrator."""

from unittest.mock import Mock

from code_search.search.models import (
    SearchResult,
    SearchResultLanguages,
    SearchResultPosition,
)
from code_search.search.service import CodeSearchService, perform_search
from code_search.services.language_mapper import LanguageClassifier

CONTENT = "line1\nline2\nMATCHhere\nline4\nline5\nline6\n"


def make_hit(**overrides) -> SearchResult:
    start = CONTENT.index("MATCH")
    fields = dict(
        repo_id=7,
        filename="src/app.py",
        commit_id="abc123",
        content=CONTENT,
        updated_unix=1700000000,
        language="Python",
        color="#3572A5",
        positions=[SearchResultPosition(start_index=start, end_index=start + 5)],
    )
    fields.update(overrides)
    return SearchResult(**fields)


def make_indexer(hits, total=None, languages=None) -> Mock:
    indexer = Mock()
    indexer.classifier = LanguageClassifier(config_dir=None)
    indexer.search.return_value = (
        len(hits) if total is None else total,
        hits,
        languages or [],
    )
    return indexer


class TestCodeSearchService:
    """Tests for CodeSearchService.perform_search."""

    def test_empty_keyword_skips_backend(self):
        indexer = make_indexer([make_hit()])
        service = CodeSearchService(indexer)

        assert service.perform_search([1], "", "", 1, 10) == (0, [], [])
        indexer.search.assert_not_called()

    def test_arguments_are_passed_through(self):
        indexer = make_indexer([])
        CodeSearchService(indexer).perform_search([1, 2], "Go", "needle", 3, 25)
        indexer.search.assert_called_once_with([1, 2], "Go", "needle", 3, 25)

    def test_hits_are_rendered(self):
        languages = [SearchResultLanguages(language="Python", color="#3572A5", count=4)]
        indexer = make_indexer([make_hit()], total=42, languages=languages)

        total, results, facets = CodeSearchService(indexer).perform_search(
            [], "", "MATCH", 1, 10
        )

        assert total == 42
        assert facets == languages
        assert len(results) == 1

        result = results[0]
        assert result.repo_id == 7
        assert result.filename == "src/app.py"
        assert result.commit_id == "abc123"
        assert result.updated_unix == 1700000000
        assert result.language == "Python"
        assert result.color == "#3572A5"
        assert result.highlight_class == "python"
        assert result.line_numbers == [1, 2, 3, 4, 5]
        assert "<span class='active'>MATCH</span>here" in result.formatted_lines

    def test_window_spans_first_to_last_match(self):
        content = "".join(f"line{i}\n" for i in range(1, 21))
        first = content.index("line5")
        last = content.index("line12")
        hit = make_hit(
            content=content,
            positions=[
                SearchResultPosition(start_index=first, end_index=first + 5),
                SearchResultPosition(start_index=last, end_index=last + 6),
            ],
        )

        _, results, _ = CodeSearchService(make_indexer([hit])).perform_search(
            [], "", "line", 1, 10
        )

        assert results[0].line_numbers == list(range(3, 15))

    def test_context_lines_setting(self):
        service = CodeSearchService(make_indexer([make_hit()]), context_lines=0)
        _, results, _ = service.perform_search([], "", "MATCH", 1, 10)
        assert results[0].line_numbers == [3]

    def test_hit_without_positions_is_skipped(self):
        indexer = make_indexer(
            [make_hit(filename="empty.py", positions=[]), make_hit()], total=9
        )

        total, results, _ = CodeSearchService(indexer).perform_search(
            [], "", "MATCH", 1, 10
        )

        assert total == 9
        assert [r.filename for r in results] == ["src/app.py"]
        assert results[0].line_numbers == [1, 2, 3, 4, 5]

    def test_unknown_file_is_not_highlighted(self):
        indexer = make_indexer([make_hit(filename="LICENSE")])
        _, results, _ = CodeSearchService(indexer).perform_search(
            [], "", "MATCH", 1, 10
        )
        assert results[0].highlight_class == "nohighlight"


class TestPerformSearchFunction:
    """Tests for the module-level perform_search helper."""

    def test_delegates_to_service(self):
        indexer = make_indexer([make_hit()])
        total, results, _ = perform_search(indexer, [7], "", "MATCH", 1, 10)

        assert total == 1
        assert results[0].line_numbers == [1, 2, 3, 4, 5]
        indexer.search.assert_called_once_with([7], "", "MATCH", 1, 10)

    def test_empty_keyword(self):
        indexer = make_indexer([make_hit()])
        assert perform_search(indexer, [], "", "", 1, 10) == (0, [], [])
        indexer.search.assert_not_called()
