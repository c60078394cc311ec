"""Offset to line/column mapping for scanned file contents."""

from __future__ import annotations

import bisect


class LineIndex:
    """Maps character offsets in a text to 1-based ``(line, column)`` pairs."""

    def __init__(self, content: str) -> None:
        self._content = content
        starts = [0]
        pos = content.find("\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = content.find("\n", pos + 1)
        self._starts = starts

    def locate(self, offset: int) -> tuple[int, int]:
        """Return the 1-based line and column of *offset*."""
        line_idx = bisect.bisect_right(self._starts, offset) - 1
        return line_idx + 1, offset - self._starts[line_idx] + 1

    def line_text(self, line: int) -> str:
        """Return the text of 1-based *line* without its newline."""
        start = self._starts[line - 1]
        end = self._content.find("\n", start)
        if end == -1:
            end = len(self._content)
        return self._content[start:end].rstrip("\r")
