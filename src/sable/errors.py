"""Diagnostics: error kinds, collection, and Rust-style colored rendering."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sable.source import SourceFile, Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


class ErrorKind(Enum):
    """Diagnostic taxonomy. Each kind carries its stable code."""

    LEX_ERROR = ("E100", "LexError")
    UNEXPECTED_TOKEN = ("E200", "UnexpectedToken")
    AMBIGUOUS_BRACKET_FORM = ("E201", "AmbiguousBracketForm")
    ARITY_MISMATCH = ("E202", "ArityMismatch")
    MISSING_ELSE_BRANCH = ("E203", "MissingElseBranch")
    INVALID_EFFECT_ROW = ("E204", "InvalidEffectRow")
    MALFORMED_FIELD_PUN = ("E205", "MalformedFieldPun")
    DANGLING_ANNOTATION = ("E206", "DanglingAnnotation")
    ANNOTATION_MISMATCH = ("W300", "AnnotationMismatch")

    def __init__(self, code: str, title: str) -> None:
        self.code = code
        self.title = title


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str
    style: str = "primary"  # "primary" or "secondary"


@dataclass
class Diagnostic:
    """A single diagnostic message with labels, notes and expected tokens."""

    severity: Severity
    kind: ErrorKind
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    expected: list[str] = field(default_factory=list)

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def span(self) -> Span | None:
        """Span of the primary label, if any."""
        return self.labels[0].span if self.labels else None


class DiagnosticReporter:
    """Accumulates diagnostics for one source unit.

    Speculative parses run inside ``muted()`` so that a rejected
    alternative leaves no diagnostics behind.
    """

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self._muted = 0

    def report(self, diag: Diagnostic) -> None:
        if self._muted:
            return
        self.diagnostics.append(diag)

    def error(
        self,
        kind: ErrorKind,
        message: str,
        span: Span,
        *,
        label: str = "",
        notes: list[str] | None = None,
        expected: list[str] | None = None,
    ) -> None:
        self.report(Diagnostic(
            severity=Severity.ERROR,
            kind=kind,
            message=message,
            labels=[DiagnosticLabel(span=span, message=label)],
            notes=notes or [],
            expected=expected or [],
        ))

    def warning(
        self,
        kind: ErrorKind,
        message: str,
        span: Span,
        *,
        label: str = "",
        notes: list[str] | None = None,
    ) -> None:
        self.report(Diagnostic(
            severity=Severity.WARNING,
            kind=kind,
            message=message,
            labels=[DiagnosticLabel(span=span, message=label)],
            notes=notes or [],
        ))

    @contextmanager
    def muted(self) -> Iterator[None]:
        self._muted += 1
        try:
            yield
        finally:
            self._muted -= 1

    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.diagnostics)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Source lines come from ``sources`` (filename to text) when given,
    otherwise from disk.
    """

    def __init__(self, *, color: bool = True, sources: dict[str, str] | None = None) -> None:
        self.color = color
        self._file_cache: dict[str, SourceFile | None] = {}
        for name, text in (sources or {}).items():
            self._file_cache[name] = SourceFile(Path(name), text)

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            path = Path(filename)
            try:
                self._file_cache[filename] = SourceFile(path) if path.is_file() else None
            except OSError:
                self._file_cache[filename] = None
        source = self._file_cache[filename]
        if source is None or not 1 <= line_num <= len(source.lines):
            return None
        return source.line_at(line_num)

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E200]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            gutter = f"{span.start_line:>4}"
            lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                lines.append(
                    f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
                )
                if span.start_line == span.end_line:
                    caret_len = max(1, span.end_col - span.start_col)
                else:
                    caret_len = max(1, len(source_line) - span.start_col + 1)
                padding = " " * (span.start_col - 1)
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                    f"{padding}{self._c(color)}{'^' * caret_len}{self._c(_RESET)}"
                )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class CompileError(Exception):
    """Batch error carrying multiple diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")


class LexError(CompileError):
    """Fatal lexing failure. Carries exactly one diagnostic."""

    def __init__(self, message: str, span: Span) -> None:
        self.span = span
        super().__init__([
            Diagnostic(
                severity=Severity.ERROR,
                kind=ErrorKind.LEX_ERROR,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
            )
        ])
