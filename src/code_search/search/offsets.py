"""
Character to byte offset reconciliation for backend match spans.

Search backends report highlight offsets in characters (Unicode scalar
values). The rendering pipeline slices UTF-8 encoded content, so every span
has to be translated into byte offsets before use. Getting this wrong shifts
highlights on any non-ASCII content.
"""

import logging
from typing import Dict, Iterable, List

from .models import SearchResultPosition

logger = logging.getLogger(__name__)


def _utf8_width(char: str) -> int:
    code_point = ord(char)
    if code_point < 0x80:
        return 1
    if code_point < 0x800:
        return 2
    if code_point < 0x10000:
        return 3
    return 4


def reconcile_positions(
    content: str, positions: Iterable[SearchResultPosition]
) -> List[SearchResultPosition]:
    """
    Convert character-offset spans into byte-offset spans over ``content``.

    Only the ordinals used as span boundaries are recorded while scanning, so
    the lookup stays linear in the content length. The ordinal equal to the
    character length of ``content`` maps to its byte length, which keeps
    matches that end at end-of-file.

    Args:
        content: Decoded file content
        positions: Spans in character offsets, as reported by the backend

    Returns:
        Spans in UTF-8 byte offsets, in input order. Spans with a boundary
        outside the content are dropped.
    """
    spans = list(positions)
    if not spans:
        return []

    boundaries: Dict[int, int] = {}
    for span in spans:
        boundaries[span.start_index] = -1
        boundaries[span.end_index] = -1

    byte_offset = 0
    char_count = 0
    for char in content:
        if char_count in boundaries:
            boundaries[char_count] = byte_offset
        byte_offset += _utf8_width(char)
        char_count += 1
    if char_count in boundaries:
        boundaries[char_count] = byte_offset

    reconciled = []
    for span in spans:
        start = boundaries[span.start_index]
        end = boundaries[span.end_index]
        if start < 0 or end < 0:
            logger.debug(
                f"Dropping span {span.start_index}-{span.end_index}: "
                f"outside content of {char_count} characters"
            )
            continue
        reconciled.append(SearchResultPosition(start_index=start, end_index=end))

    return reconciled


def byte_slice(content: str, start: int, end: int) -> str:
    """Return ``content[start:end]`` where offsets are UTF-8 byte offsets."""
    return content.encode("utf-8")[start:end].decode("utf-8", errors="replace")
