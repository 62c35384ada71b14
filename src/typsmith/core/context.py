"""Compiler state shared across fragments and per-fragment compilation contexts.

The :class:`Compiler` owns everything that outlives a single fragment: the
package cache, the file store, the loaded fonts and the library bundle. Each
fragment is compiled through a :class:`CompilationContext`, the capability
object handed to the engine. It answers the engine's queries (library, font
book, main source, other files, fonts, today's date) and never lets the engine
reach the caches any other way.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from types import MappingProxyType

from .diagnostics import DiagnosticEmitter, DiagnosticReporter
from .engine import Engine
from .exceptions import CompilationFailedError
from .files import FileId, FileStore, Source
from .packages import PackageCache
from ..fonts.loader import Font, FontBook, FontCollection


@dataclass(frozen=True, slots=True)
class Library:
    """Read-only standard library configuration (``sys.inputs``)."""

    inputs: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, str] | None = None) -> Library:
        return cls(inputs=MappingProxyType(dict(inputs or {})))


@dataclass(frozen=True, slots=True)
class SourceOrigin:
    """Where a fragment's main source came from inside its document.

    ``line`` is the zero-based line of the fragment in the document and
    ``preamble_lines`` the number of synthesized lines preceding its body.
    """

    name: str
    line: int = 0
    preamble_lines: int = 0


def _capture_today() -> date:
    try:
        return datetime.now().astimezone().date()
    except (OSError, ValueError):
        return datetime.now(timezone.utc).date()


class Compiler:
    """Engine wrapper holding caches, fonts and library shared by all fragments."""

    def __init__(
        self,
        engine: Engine,
        *,
        packages: PackageCache | None = None,
        fonts: FontCollection | None = None,
        library: Library | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.engine = engine
        self.packages = packages if packages is not None else PackageCache()
        self.files = FileStore(self.packages)
        self.fonts = fonts if fonts is not None else FontCollection()
        self.library = library or Library()
        self.reporter = DiagnosticReporter(emitter)

    @property
    def book(self) -> FontBook:
        return self.fonts.book

    def wrap_source(
        self,
        text: str,
        *,
        origin: SourceOrigin | None = None,
        today: date | None = None,
    ) -> CompilationContext:
        """Create a compilation context whose main file is ``text``."""
        return CompilationContext(self, text, origin=origin, today=today)

    def render(self, text: str, *, origin: SourceOrigin | None = None) -> str:
        """Compile ``text`` and return the SVG markup of all pages.

        Warnings are reported on success. On failure, warnings and errors are
        all reported before :class:`CompilationFailedError` is raised.
        """
        context = self.wrap_source(text, origin=origin)
        outcome = self.engine.compile(context)
        if outcome.document is not None:
            self.reporter.report(context, outcome.warnings)
            return outcome.document.to_svg()

        rendered = self.reporter.report(context, outcome.warnings, outcome.errors)
        errors = rendered[len(outcome.warnings) :]
        summary = errors[0].splitlines()[0] if errors else "typst compilation failed"
        raise CompilationFailedError(summary, outcome.errors)


class CompilationContext:
    """Capability surface queried by the engine while compiling one fragment."""

    def __init__(
        self,
        compiler: Compiler,
        text: str,
        *,
        origin: SourceOrigin | None = None,
        today: date | None = None,
    ) -> None:
        self.compiler = compiler
        self.origin = origin
        self._source = Source(FileId.detached_source(), text)
        self._today = today or _capture_today()

    def library(self) -> Library:
        return self.compiler.library

    def book(self) -> FontBook:
        return self.compiler.book

    def main(self) -> FileId:
        return self._source.id

    def main_source(self) -> Source:
        return self._source

    def source(self, file_id: FileId) -> Source:
        if file_id == self._source.id:
            return self._source
        return self.compiler.files.get_source(file_id)

    def file(self, file_id: FileId) -> bytes:
        if file_id == self._source.id:
            return self._source.text.encode("utf-8")
        return self.compiler.files.get_bytes(file_id)

    def font(self, index: int) -> Font | None:
        return self.compiler.fonts.get(index)

    def today(self, offset: int | None = None) -> date:
        """Return the date captured when the context was created.

        ``offset`` is accepted for interface compatibility and ignored.
        """
        return self._today

    @property
    def package_root(self) -> Path:
        return self.compiler.packages.root

    def lookup(self, file_id: FileId) -> Source:
        """Return the line-indexed source of ``file_id`` for diagnostics."""
        return self.source(file_id)

    def name(self, file_id: FileId) -> str:
        if file_id == self._source.id:
            return self.origin.name if self.origin is not None else "<fragment>"
        return str(file_id)

    def display_position(self, file_id: FileId, line: int) -> tuple[str, int]:
        """Map a zero-based line of ``file_id`` to a display name and one-based line."""
        if file_id == self._source.id and self.origin is not None:
            body_line = line - self.origin.preamble_lines
            if body_line >= 0:
                return self.origin.name, self.origin.line + body_line + 1
            return f"{self.origin.name} (preamble)", line + 1
        return self.name(file_id), line + 1


__all__ = ["CompilationContext", "Compiler", "Library", "SourceOrigin"]
