"""Source file representation and span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range within a source file.

    Lines and columns are 1-indexed; ``end_col`` points just past the last
    character. ``start`` and ``end`` are half-open character offsets into
    the decoded source text.
    """

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    start: int = 0
    end: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def to(self, other: Span) -> Span:
        """Join this span with a later one."""
        return Span(
            self.file,
            self.start_line, self.start_col,
            other.end_line, other.end_col,
            self.start, other.end,
        )


class SourceFile:
    """A loaded source file with line access for diagnostics."""

    def __init__(self, path: Path, content: str | None = None) -> None:
        self.path = path
        self.content = path.read_text(encoding="utf-8") if content is None else content
        self.lines = self.content.splitlines()

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""

    def span_text(self, span: Span) -> str:
        """Extract the text covered by a span."""
        if span.end > span.start:
            return self.content[span.start:span.end]
        if span.start_line == span.end_line:
            line = self.line_at(span.start_line)
            return line[span.start_col - 1 : span.end_col - 1]
        parts = []
        for ln in range(span.start_line, span.end_line + 1):
            line = self.line_at(ln)
            if ln == span.start_line:
                parts.append(line[span.start_col - 1 :])
            elif ln == span.end_line:
                parts.append(line[: span.end_col - 1])
            else:
                parts.append(line)
        return "\n".join(parts)
