"""Diagnostic records, emitters, and the source-located reporter."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .exceptions import FileError, PackageError, ReportFailedError


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .context import CompilationContext
    from .files import FileId


logger = logging.getLogger(__name__)

DIAGNOSTIC_PREFIX = "Typst: "


class Severity(Enum):
    """Severity attached to an engine diagnostic."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Span:
    """Byte range inside a virtual file."""

    file: FileId
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Error or warning emitted by the typesetting engine."""

    severity: Severity
    message: str
    hints: tuple[str, ...] = field(default_factory=tuple)
    span: Span | None = None

    @classmethod
    def error(cls, message: str, *, hints: Iterable[str] = (), span: Span | None = None):
        return cls(Severity.ERROR, message, tuple(hints), span)

    @classmethod
    def warning(cls, message: str, *, hints: Iterable[str] = (), span: Span | None = None):
        return cls(Severity.WARNING, message, tuple(hints), span)


@dataclass(frozen=True, slots=True)
class Location:
    """Resolved display location of a span (one-based line and column)."""

    name: str
    line: int
    column: int
    snippet: str
    width: int


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "package_fetch":
        package = data.get("package") or "<unknown>"
        url = data.get("url")
        suffix = f" ({url})" if url else ""
        return f"Downloading package {package}{suffix}"

    if name == "package_cached":
        package = data.get("package") or "<unknown>"
        path = data.get("path") or "<unknown>"
        return f"Cached package {package} in {path}"

    if name == "chapter_rendered":
        chapter = data.get("chapter") or "<unknown>"
        fragments = data.get("fragments", 0)
        if not fragments:
            return None
        return f"Rendered {fragments} Typst fragment(s) in '{chapter}'"

    return None


class DiagnosticReporter:
    """Render engine diagnostics as located, human-readable messages."""

    def __init__(self, emitter: DiagnosticEmitter | None = None) -> None:
        self.emitter = emitter or LoggingEmitter()

    def report(
        self,
        context: CompilationContext,
        warnings: Iterable[Diagnostic] = (),
        errors: Iterable[Diagnostic] = (),
    ) -> list[str]:
        """Emit every warning, then every error; return the rendered texts."""
        rendered: list[str] = []
        for diagnostic in [*warnings, *errors]:
            text = self.format(context, diagnostic)
            rendered.append(text)
            if diagnostic.severity is Severity.ERROR:
                self.emitter.error(f"{DIAGNOSTIC_PREFIX}{text}")
            else:
                self.emitter.warning(f"{DIAGNOSTIC_PREFIX}{text}")
        return rendered

    def format(self, context: CompilationContext, diagnostic: Diagnostic) -> str:
        location: Location | None = None
        if diagnostic.span is not None:
            try:
                location = self.locate(context, diagnostic.span)
            except ReportFailedError as exc:
                logger.debug("Unable to locate diagnostic: %s", exc)
        return render_diagnostic(diagnostic, location)

    def locate(self, context: CompilationContext, span: Span) -> Location:
        """Resolve ``span`` to a display location or raise :class:`ReportFailedError`."""
        try:
            source = context.lookup(span.file)
        except (FileError, PackageError) as exc:
            raise ReportFailedError(f"cannot load {span.file}: {exc}") from exc

        line = source.byte_to_line(span.start)
        if line is None:
            raise ReportFailedError(f"offset {span.start} is out of range for {span.file}")
        column = source.byte_to_column(span.start)
        if column is None:
            raise ReportFailedError(f"offset {span.start} is not on a character boundary")
        snippet = source.line_text(line) or ""
        bounds = source.line_to_range(line)
        end = min(span.end, bounds[1]) if bounds else span.end
        end_column = source.byte_to_column(end)
        width = max(1, (end_column if end_column is not None else column + 1) - column)

        name, display_line = context.display_position(span.file, line)
        return Location(name, display_line, column + 1, snippet, width)


def render_diagnostic(diagnostic: Diagnostic, location: Location | None) -> str:
    """Lay out a diagnostic in the style of a compiler error report."""
    lines = [f"{diagnostic.severity.value}: {diagnostic.message}"]
    if location is not None:
        gutter = " " * len(str(location.line))
        lines.append(f"{gutter}┌─ {location.name}:{location.line}:{location.column}")
        lines.append(f"{gutter} │")
        lines.append(f"{location.line} │ {location.snippet}")
        marker = " " * (location.column - 1) + "^" * location.width
        lines.append(f"{gutter} │ {marker}")
        notes_prefix = f"{gutter} = "
    else:
        notes_prefix = "  = "
    lines.extend(f"{notes_prefix}hint: {hint}" for hint in diagnostic.hints)
    return "\n".join(lines)


__all__ = [
    "DIAGNOSTIC_PREFIX",
    "Diagnostic",
    "DiagnosticEmitter",
    "DiagnosticReporter",
    "Location",
    "LoggingEmitter",
    "NullEmitter",
    "Severity",
    "Span",
    "format_event_message",
    "render_diagnostic",
]
