from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from sagelens.mapping.model import TextRange


@dataclass(frozen=True)
class LinePosition:
    """Zero-based line and codepoint column."""

    line: int
    character: int


class LineIndex:
    """Offset <-> (line, character) conversion for one immutable text.

    Lines end at ``\\n``; a ``\\r`` before it counts as part of the line.
    Positions past the end of a line clamp to the line end, positions past the
    last line clamp to the end of the text.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.line_starts = [0]
        position = text.find("\n")
        while position >= 0:
            self.line_starts.append(position + 1)
            position = text.find("\n", position + 1)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def line_end(self, line: int) -> int:
        if line + 1 < len(self.line_starts):
            return self.line_starts[line + 1] - 1
        return len(self.text)

    def position(self, offset: int) -> LinePosition:
        if offset < 0 or offset > len(self.text):
            raise ValueError(f"offset {offset} outside text of length {len(self.text)}")
        line = bisect_right(self.line_starts, offset) - 1
        return LinePosition(line, offset - self.line_starts[line])

    def offset(self, line: int, character: int) -> int:
        if line < 0 or character < 0:
            raise ValueError(f"negative position {line}:{character}")
        if line >= len(self.line_starts):
            return len(self.text)
        start = self.line_starts[line]
        return min(start + character, self.line_end(line))

    def range_positions(self, text_range: TextRange) -> tuple[LinePosition, LinePosition]:
        return self.position(text_range.start), self.position(text_range.end)

    def text_range(self, start: LinePosition, end: LinePosition) -> TextRange:
        first = self.offset(start.line, start.character)
        last = self.offset(end.line, end.character)
        return TextRange(first, max(first, last))
