"""Context window selection around the matched region of a file."""

from typing import Tuple, Union

DEFAULT_CONTEXT_LINES = 2


def compute_window(
    content: Union[str, bytes],
    start: int,
    end: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> Tuple[int, int]:
    """
    Compute the byte window shown around a match.

    The newline that ends the line before the match (and the one that ends
    the match's last line) is not counted as context. Walking backward from
    ``start`` stops just after the next ``context_lines`` newlines; walking
    forward from ``end`` stops on the newline that ends the last context line
    (exclusive). Both walks clamp at the content boundaries, so a match near
    the top or bottom of a file gets fewer context lines.

    Args:
        content: File content, either decoded text or its UTF-8 bytes
        start: Byte offset of the first match
        end: Byte offset where the last match ends
        context_lines: Lines of context on each side

    Returns:
        Tuple of (window_start, window_end) byte offsets with
        window_start <= start <= end <= window_end
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    length = len(data)
    start = min(max(start, 0), length)
    end = min(max(end, start), length)

    window_start = start
    lines_before = 0
    while window_start > 0:
        if data[window_start - 1] == 0x0A:
            if lines_before == context_lines:
                break
            lines_before += 1
        window_start -= 1

    window_end = end
    lines_after = 0
    while window_end < length:
        if data[window_end] == 0x0A:
            if lines_after == context_lines:
                break
            lines_after += 1
        window_end += 1

    return window_start, window_end
