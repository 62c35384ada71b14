"""Engine adapter compiling compilation contexts with the ``typst`` binding."""

from __future__ import annotations

from collections.abc import Iterable
import logging
import re
from typing import Any

import typst

from typsmith.core.context import CompilationContext
from typsmith.core.diagnostics import Diagnostic
from typsmith.core.engine import CompileOutcome, RenderedDocument
from typsmith.core.exceptions import FileError, PackageError
from typsmith.core.files import FileId
from typsmith.core.packages import PackageSpec


logger = logging.getLogger(__name__)

_IMPORT_PATTERN = re.compile(
    r"#(?:import|include)\s+\"(?P<spec>@[A-Za-z0-9_-]+/[A-Za-z0-9_-]+:\d+\.\d+\.\d+)\""
)

PACKAGE_MANIFEST = "typst.toml"


def package_imports(text: str) -> list[PackageSpec]:
    """Return the distinct packages imported by ``text`` in order of appearance."""
    specs: list[PackageSpec] = []
    for match in _IMPORT_PATTERN.finditer(text):
        spec = PackageSpec.parse(match["spec"])
        if spec not in specs:
            specs.append(spec)
    return specs


def _package_sources(context: CompilationContext, spec: PackageSpec) -> list[FileId]:
    root = context.package_root / spec.subdir
    return [
        FileId.in_package(spec, path.relative_to(root).as_posix())
        for path in sorted(root.rglob("*.typ"))
        if path.is_file()
    ]


def _diagnostic_from(entry: Any, *, warning: bool) -> Diagnostic:
    message = str(getattr(entry, "message", None) or entry).strip() or "unknown error"
    hints = [str(hint) for hint in getattr(entry, "hints", None) or ()]
    hints.extend(f"trace: {item}" for item in getattr(entry, "trace", None) or ())
    if warning:
        return Diagnostic.warning(message, hints=hints)
    return Diagnostic.error(message, hints=hints)


def _pages(output: Any) -> tuple[str, ...]:
    items: Iterable[Any] = output if isinstance(output, list) else [output]
    return tuple(
        item.decode("utf-8") if isinstance(item, (bytes, bytearray)) else str(item)
        for item in items
    )


class TypstEngine:
    """Compile the main source of a context to SVG with typst-py.

    Packages imported by the main source, and transitively by those
    packages, are resolved through the context first, so they are downloaded
    into the typsmith package cache, which the binding then reads through
    ``package_path``.
    """

    def __init__(self, *, ignore_system_fonts: bool = False) -> None:
        self.ignore_system_fonts = ignore_system_fonts

    def prefetch_packages(self, context: CompilationContext) -> list[PackageSpec]:
        """Resolve the packages imported by the main source and by those packages.

        Returns the resolved packages in the order they were first imported.
        """
        pending = package_imports(context.main_source().text)
        resolved: list[PackageSpec] = []
        while pending:
            spec = pending.pop(0)
            if spec in resolved:
                continue
            resolved.append(spec)
            context.file(FileId.in_package(spec, PACKAGE_MANIFEST))
            for file_id in _package_sources(context, spec):
                pending.extend(package_imports(context.source(file_id).text))
        return resolved

    def compile(self, context: CompilationContext) -> CompileOutcome:
        try:
            self.prefetch_packages(context)
        except (PackageError, FileError) as exc:
            return CompileOutcome(document=None, errors=(Diagnostic.error(str(exc)),))

        font_paths = [str(path) for path in context.book().sources]
        try:
            output, warnings = typst.compile_with_warnings(
                context.file(context.main()),
                format="svg",
                font_paths=font_paths,
                ignore_system_fonts=self.ignore_system_fonts,
                sys_inputs=dict(context.library().inputs),
                package_path=str(context.package_root.resolve()),
            )
        except typst.TypstError as exc:
            logger.debug("typst reported an error: %s", exc)
            return CompileOutcome(document=None, errors=(_diagnostic_from(exc, warning=False),))

        return CompileOutcome(
            document=RenderedDocument(_pages(output)),
            warnings=tuple(_diagnostic_from(item, warning=True) for item in warnings or ()),
        )


__all__ = ["PACKAGE_MANIFEST", "TypstEngine", "package_imports"]
