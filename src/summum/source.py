"""Source text and span tracking.

Spans are 1-based and their end column is inclusive. A ``SourceFile`` keeps
the text of one Rust file (or one summum body) and translates between
line/column positions and string offsets, which is what diagnostics and the
expander's text splicing both need.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range within a source file."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def point(cls, file: str, line: int, col: int) -> Span:
        return cls(file, line, col, line, col)

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    @property
    def single_line(self) -> bool:
        return self.start_line == self.end_line

    def to(self, end: Span) -> Span:
        """Return the span covering this one through the end of ``end``."""
        return Span(self.file, self.start_line, self.start_col, end.end_line, end.end_col)

    def end_point(self) -> Span:
        """The zero-width position at the last character of this span."""
        return Span.point(self.file, self.end_line, self.end_col)


class SourceFile:
    """Named source text with line and offset access."""

    def __init__(self, name: str, text: str) -> None:
        self.name = name
        self.text = text
        self.lines = text.splitlines()
        self._starts = [0]
        for idx, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(idx + 1)

    @classmethod
    def read(cls, path: Path) -> SourceFile:
        return cls(str(path), path.read_text())

    def line(self, n: int) -> str | None:
        """Return the 1-indexed line, or None if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return None

    def offset(self, line: int, col: int) -> int:
        """String offset of a 1-based line/column position."""
        return self._starts[line - 1] + col - 1

    def indent_at(self, offset: int) -> str:
        """Leading whitespace of the line holding ``offset``, up to ``offset``."""
        line_start = self._starts[bisect_right(self._starts, offset) - 1]
        prefix = self.text[line_start:offset]
        return prefix[: len(prefix) - len(prefix.lstrip())]

    def span_text(self, span: Span) -> str:
        """Extract the text covered by a span."""
        return self.text[self.offset(span.start_line, span.start_col):
                         self.offset(span.end_line, span.end_col) + 1]
