"""
Line and span rendering of a search hit.

Walks the windowed content line by line, consuming the match spans as a
queue, and produces escaped HTML list items with the active portions of each
match wrapped in ``<span class='active'>``. Offsets are UTF-8 byte offsets
into the full content.
"""

import html
from collections import deque
from typing import Deque, Iterable, List, Tuple

from .models import SearchResultPosition

ACTIVE_OPEN = "<span class='active'>"
ACTIVE_CLOSE = "</span>"
LINE_OPEN = "<li>"
LINE_CLOSE = "</li>"


def _escape(fragment: bytes) -> str:
    return html.escape(fragment.decode("utf-8", errors="replace"), quote=True)


def split_lines(data: bytes) -> List[bytes]:
    """Split ``data`` after every newline, keeping the newline on each line.

    Joining the result reproduces ``data`` exactly.
    """
    lines = [line + b"\n" for line in data.split(b"\n")]
    # The final element never had a newline after it.
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def render_lines(
    content: str,
    window_start: int,
    window_end: int,
    positions: Iterable[SearchResultPosition],
) -> Tuple[List[int], str]:
    """
    Render ``content[window_start:window_end]`` with highlighted match spans.

    Args:
        content: Full file content
        window_start: Byte offset where the window starts
        window_end: Byte offset where the window ends
        positions: Byte-offset spans into the full content, ordered by start

    Returns:
        Tuple of (line_numbers, formatted_html); one 1-based line number per
        rendered ``<li>`` element
    """
    data = content.encode("utf-8")
    start_line_number = 1 + data.count(b"\n", 0, window_start)

    queue: Deque[SearchResultPosition] = deque(positions)
    parts: List[str] = []
    line_numbers: List[int] = []
    index = window_start

    for i, line in enumerate(split_lines(data[window_start:window_end])):
        parts.append(LINE_OPEN)
        pos = 0
        line_end = index + len(line)

        while queue:
            span = queue[0]
            if span.end_index <= span.start_index or span.end_index <= index + pos:
                queue.popleft()
                continue

            if span.start_index >= line_end:
                break

            open_active = max(span.start_index - index, pos)
            close_active = min(span.end_index - index, len(line))

            parts.append(_escape(line[pos:open_active]))
            parts.append(ACTIVE_OPEN)
            parts.append(_escape(line[open_active:close_active]))
            parts.append(ACTIVE_CLOSE)
            pos = close_active

            if pos >= len(line):
                # Span continues on the next line.
                break

        parts.append(_escape(line[pos:]))
        parts.append(LINE_CLOSE)

        line_numbers.append(start_line_number + i)
        index = line_end

    return line_numbers, "".join(parts)
