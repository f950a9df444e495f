"""Unit tests for context window selection."""

from code_search.search.snippet import compute_window

CONTENT = "line1\nline2\nMATCHhere\nline4\nline5\nline6\n"


class TestComputeWindow:
    """Tests for compute_window."""

    def test_two_lines_of_context_each_side(self):
        start = CONTENT.index("MATCH")
        window_start, window_end = compute_window(CONTENT, start, start + 5)

        assert CONTENT[window_start:window_end] == (
            "line1\nline2\nMATCHhere\nline4\nline5"
        )

    def test_match_on_first_line(self):
        window_start, window_end = compute_window(CONTENT, 0, 5)
        assert window_start == 0
        assert CONTENT[window_start:window_end] == "line1\nline2\nMATCHhere"

    def test_match_on_last_line(self):
        content = "a\nb\nc\nd\nlast"
        start = content.index("last")
        window_start, window_end = compute_window(content, start, start + 4)
        assert content[window_start:window_end] == "c\nd\nlast"
        assert window_end == len(content)

    def test_zero_context_lines(self):
        start = CONTENT.index("MATCH")
        window_start, window_end = compute_window(CONTENT, start, start + 5, 0)
        assert CONTENT[window_start:window_end] == "MATCHhere"

    def test_match_spanning_lines(self):
        start = CONTENT.index("line2")
        end = CONTENT.index("line4") + 5
        window_start, window_end = compute_window(CONTENT, start, end, 1)
        assert CONTENT[window_start:window_end] == (
            "line1\nline2\nMATCHhere\nline4\nline5"
        )

    def test_window_contains_match(self):
        for start in range(len(CONTENT)):
            end = min(start + 3, len(CONTENT))
            window_start, window_end = compute_window(CONTENT, start, end)
            assert 0 <= window_start <= start <= end <= window_end <= len(CONTENT)

    def test_offsets_are_bytes(self):
        content = "ü\nü\nfind\nü\nü\n"
        data = content.encode("utf-8")
        start = data.index(b"find")

        window_start, window_end = compute_window(content, start, start + 4)

        assert data[window_start:window_end] == "ü\nü\nfind\nü\nü".encode("utf-8")

    def test_accepts_bytes(self):
        data = CONTENT.encode("utf-8")
        start = data.index(b"MATCH")
        assert compute_window(data, start, start + 5) == compute_window(
            CONTENT, start, start + 5
        )

    def test_out_of_range_offsets_are_clamped(self):
        window_start, window_end = compute_window("abc", -5, 99)
        assert (window_start, window_end) == (0, 3)

    def test_empty_content(self):
        assert compute_window("", 0, 0) == (0, 0)
