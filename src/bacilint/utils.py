"""Utility functions for bacilint."""

import re

from .models import Position, TextEdit

LINE_BREAK_PATTERN = re.compile(r"\r?\n")
LEADING_WHITESPACE_PATTERN = re.compile(r"^\s*")


def detect_line_ending(text: str) -> str:
    """Return "\\r\\n" if the document uses CRLF line endings, else "\\n"."""
    return "\r\n" if "\r\n" in text else "\n"


def leading_whitespace(line: str) -> str:
    return LEADING_WHITESPACE_PATTERN.match(line).group(0)


def collapse_blank_runs(text: str, eol: str = "\n") -> str:
    """Replace every run of three or more line breaks with exactly two."""
    return re.sub(r"(?:\r?\n){3,}", eol * 2, text)


def line_start_offsets(text: str) -> list[int]:
    """Character offset of the start of each logical line."""
    offsets = [0]
    for match in LINE_BREAK_PATTERN.finditer(text):
        offsets.append(match.end())
    return offsets


def offset_at(text: str, position: Position, starts: list[int] | None = None) -> int:
    """
    Convert a line/character position to an offset into `text`.

    Positions past the last line map to the end of the text; characters past
    the end of a line are clamped to the line end.
    """
    starts = starts if starts is not None else line_start_offsets(text)
    if position.line < 0:
        return 0
    if position.line >= len(starts):
        return len(text)

    line_start = starts[position.line]
    if position.line + 1 < len(starts):
        next_start = starts[position.line + 1]
        line_end = next_start - (2 if text[line_start:next_start].endswith("\r\n") else 1)
    else:
        line_end = len(text)
    return line_start + min(max(position.character, 0), line_end - line_start)


def apply_edits(text: str, edits: list[TextEdit]) -> str:
    """
    Apply non-overlapping edits to a text.

    All positions refer to the original text. An insertion and a replacement
    starting at the same position both apply, the insertion landing first.

    Args:
        text: Original document text.
        edits: Edits to apply, in any order.

    Returns:
        The edited text.
    """
    starts = line_start_offsets(text)
    spans = [
        (offset_at(text, e.range.start, starts), offset_at(text, e.range.end, starts), e.new_text)
        for e in edits
    ]
    # Back to front so earlier offsets stay valid
    spans.sort(key=lambda s: (s[0], s[1]), reverse=True)

    result = text
    for start, end, new_text in spans:
        result = result[:start] + new_text + result[end:]
    return result
