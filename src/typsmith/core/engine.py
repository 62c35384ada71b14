"""Contract between compilation contexts and the typesetting engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .diagnostics import Diagnostic


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .context import CompilationContext


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    """SVG images produced for each page of a compiled document."""

    pages: tuple[str, ...]

    def to_svg(self) -> str:
        return "\n".join(self.pages)


@dataclass(frozen=True, slots=True)
class CompileOutcome:
    """Result of one compilation: a document, or errors, plus warnings."""

    document: RenderedDocument | None
    warnings: tuple[Diagnostic, ...] = field(default_factory=tuple)
    errors: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.document is not None


@runtime_checkable
class Engine(Protocol):
    """Typesetting engine compiling the main source of a context to SVG."""

    def compile(self, context: CompilationContext) -> CompileOutcome: ...


__all__ = ["CompileOutcome", "Engine", "RenderedDocument"]
