"""Diagnostics and their rustc-style rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from summum.source import SourceFile

if TYPE_CHECKING:
    from summum.source import Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


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
    message: str = ""
    primary: bool = True


@dataclass(frozen=True)
class Suggestion:
    """A suggested fix."""

    message: str
    replacement: str


@dataclass
class Diagnostic:
    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @classmethod
    def error(cls, code: str, message: str, span: Span, label: str = "") -> Diagnostic:
        return cls(Severity.ERROR, code, message, [DiagnosticLabel(span, label)])

    @classmethod
    def warning(cls, code: str, message: str, span: Span, label: str = "") -> Diagnostic:
        return cls(Severity.WARNING, code, message, [DiagnosticLabel(span, label)])

    @classmethod
    def note(cls, code: str, message: str, span: Span, label: str = "") -> Diagnostic:
        return cls(Severity.NOTE, code, message, [DiagnosticLabel(span, label)])

    def also(self, span: Span, message: str) -> Diagnostic:
        """Attach a secondary label; returns self for chaining."""
        self.labels.append(DiagnosticLabel(span, message, primary=False))
        return self

    @property
    def span(self) -> Span | None:
        """The span of the first label, if any."""
        return self.labels[0].span if self.labels else None


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    return any(d.severity == Severity.ERROR for d in diagnostics)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


class DiagnosticRenderer:
    """Renders diagnostics the way rustc prints them.

    Source lines come from registered ``SourceFile`` objects; files that were
    never registered are read from disk on first use.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, SourceFile | None] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def add_source(self, source: SourceFile) -> None:
        self._sources[source.name] = source

    def _source(self, name: str) -> SourceFile | None:
        if name not in self._sources:
            path = Path(name)
            try:
                self._sources[name] = SourceFile.read(path) if path.is_file() else None
            except OSError:
                self._sources[name] = None
        return self._sources[name]

    def _gutter(self, text: str = "", width: int = 0) -> str:
        return f"{self._c(_BLUE)}{text:>{width}} |{self._c(_RESET)}"

    def _label_lines(self, label: DiagnosticLabel, color: str, width: int) -> list[str]:
        span = label.span
        source = self._source(span.file)
        mark = "^" if label.primary else "-"
        mark_color = color if label.primary else _BLUE
        shown = [span.start_line] if span.single_line else [span.start_line, span.end_line]
        out: list[str] = []
        for n in shown:
            text = source.line(n) if source else None
            if text is None:
                continue
            if len(shown) == 2 and n == span.end_line and span.end_line > span.start_line + 1:
                out.append(f"{self._gutter('...', width)}")
            out.append(f"{self._gutter(str(n), width)} {text}")
        if span.single_line:
            padding = " " * (span.start_col - 1)
            marks = mark * max(1, span.end_col - span.start_col + 1)
            tail = f" {label.message}" if label.message else ""
            out.append(f"{self._gutter(width=width)} {padding}"
                       f"{self._c(mark_color)}{marks}{tail}{self._c(_RESET)}")
        elif label.message:
            out.append(f"{self._gutter(width=width)} "
                       f"{self._c(mark_color)}{mark} {label.message}{self._c(_RESET)}")
        return out

    def render(self, diag: Diagnostic) -> str:
        color = _COLORS[diag.severity]
        lines = [
            f"{self._c(color)}{diag.severity.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        ]
        width = max((len(str(lb.span.end_line)) for lb in diag.labels), default=1)
        if diag.span is not None:
            lines.append(f"{' ' * width}{self._c(_BLUE)}-->{self._c(_RESET)} {diag.span}")
            lines.append(self._gutter(width=width))
        for label in diag.labels:
            lines.extend(self._label_lines(label, color, width))

        for note in diag.notes:
            lines.append(f"{' ' * width} {self._c(_BLUE)}={self._c(_RESET)} note: {note}")
        for suggestion in diag.suggestions:
            lines.append(
                f"{' ' * width} {self._c(_BLUE)}={self._c(_RESET)} help: "
                f"{suggestion.message}: `{suggestion.replacement}`"
            )
        return "\n".join(lines)

    def summary(self, diagnostics: list[Diagnostic]) -> str | None:
        """The closing line: `error: aborting due to ...` or a warning count."""
        errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
        warnings = sum(1 for d in diagnostics if d.severity == Severity.WARNING)
        if errors:
            text = f"aborting due to {_plural(errors, 'previous error')}"
            if warnings:
                text += f"; {_plural(warnings, 'warning')} emitted"
            return f"{self._c(_COLORS[Severity.ERROR])}error{self._c(_RESET)}: {text}"
        if warnings:
            return (f"{self._c(_COLORS[Severity.WARNING])}warning{self._c(_RESET)}: "
                    f"{_plural(warnings, 'warning')} emitted")
        return None


class CompileError(Exception):
    """Syntax failure of one generation unit, carrying all its diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")

    @property
    def first(self) -> Diagnostic | None:
        """The first error-severity diagnostic."""
        return next((d for d in self.diagnostics if d.severity == Severity.ERROR), None)
