"""mdBook preprocessor protocol: read ``[context, book]`` JSON, return the book."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import IO, Any

from typsmith.core.config import TypstMathConfig, load_config
from typsmith.core.context import Compiler
from typsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from typsmith.core.engine import Engine
from typsmith.core.exceptions import TypsmithError
from typsmith.core.packages import PackageCache
from typsmith.core.rewriter import DocumentRewriter, RewriteOptions
from typsmith.fonts import load_fonts


logger = logging.getLogger(__name__)

PREPROCESSOR_NAME = "typst-math"
SUPPORTED_RENDERERS = frozenset({"html"})
SUPPORTED_MDBOOK_SERIES = ("0.4", "0.5")


class ProtocolError(TypsmithError):
    """Raised when the preprocessor input payload is malformed."""


@dataclass(slots=True)
class PreprocessorContext:
    """Book-wide information mdBook passes to preprocessors."""

    root: Path
    config: dict[str, Any] = field(default_factory=dict)
    renderer: str = "html"
    mdbook_version: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PreprocessorContext:
        return cls(
            root=Path(payload.get("root") or "."),
            config=dict(payload.get("config") or {}),
            renderer=str(payload.get("renderer") or "html"),
            mdbook_version=str(payload.get("mdbook_version") or ""),
        )

    def preprocessor_config(self, name: str) -> dict[str, Any]:
        table = (self.config.get("preprocessor") or {}).get(name)
        return dict(table) if isinstance(table, Mapping) else {}


def parse_input(stream: IO[str]) -> tuple[PreprocessorContext, dict[str, Any]]:
    """Decode the ``[context, book]`` pair mdBook writes to stdin."""
    try:
        payload = json.load(stream)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Unable to parse preprocessor input: {exc}") from exc
    if not isinstance(payload, list) or len(payload) != 2:
        raise ProtocolError("Preprocessor input must be a [context, book] JSON array.")
    raw_context, book = payload
    if not isinstance(raw_context, Mapping) or not isinstance(book, MutableMapping):
        raise ProtocolError("Preprocessor input must contain a context and a book object.")
    context = PreprocessorContext.from_payload(raw_context)
    _check_version(context.mdbook_version)
    return context, dict(book)


def _check_version(version: str) -> None:
    if not version:
        return
    series = ".".join(version.split(".")[:2])
    if series not in SUPPORTED_MDBOOK_SERIES:
        logger.warning(
            "The typst-math preprocessor was built for mdBook %s, but is called from %s",
            " / ".join(SUPPORTED_MDBOOK_SERIES),
            version,
        )


def write_output(book: Mapping[str, Any], stream: IO[str]) -> None:
    json.dump(book, stream, ensure_ascii=False)


def _items(container: Mapping[str, Any]) -> list[Any]:
    for key in ("sections", "items", "sub_items"):
        value = container.get(key)
        if isinstance(value, list):
            return value
    return []


def iter_chapters(book: Mapping[str, Any]) -> Iterator[MutableMapping[str, Any]]:
    """Yield chapter objects depth-first; separators and part titles are skipped."""
    stack = list(reversed(_items(book)))
    while stack:
        item = stack.pop()
        if not isinstance(item, Mapping):
            continue
        chapter = item.get("Chapter")
        if not isinstance(chapter, MutableMapping):
            continue
        yield chapter
        stack.extend(reversed(_items(chapter)))


class TypstProcessor:
    """Preprocessor rendering Typst math and code blocks in every chapter."""

    name = PREPROCESSOR_NAME

    def __init__(
        self,
        *,
        engine: Engine | None = None,
        emitter: DiagnosticEmitter | None = None,
        session: Any | None = None,
    ) -> None:
        self._engine = engine
        self._emitter = emitter or LoggingEmitter()
        self._session = session

    def supports_renderer(self, renderer: str) -> bool:
        return renderer in SUPPORTED_RENDERERS

    def load_config(self, context: PreprocessorContext) -> TypstMathConfig:
        return load_config(context.preprocessor_config(self.name))

    def build_compiler(self, context: PreprocessorContext, config: TypstMathConfig) -> Compiler:
        engine = self._engine
        if engine is None:
            from .typst_engine import TypstEngine

            engine = TypstEngine(ignore_system_fonts=not config.system_fonts)
        packages = PackageCache(
            config.cache_root(context.root),
            session=self._session,
            emitter=self._emitter,
        )
        fonts = load_fonts(config.font_paths(context.root), system_fonts=config.system_fonts)
        return Compiler(engine, packages=packages, fonts=fonts, emitter=self._emitter)

    def build_rewriter(self, context: PreprocessorContext) -> DocumentRewriter:
        """Return a rewriter configured from the preprocessor table of ``context``."""
        config = self.load_config(context)
        compiler = self.build_compiler(context, config)
        return DocumentRewriter(
            compiler, RewriteOptions.from_config(config), emitter=self._emitter
        )

    def run(self, context: PreprocessorContext, book: dict[str, Any]) -> dict[str, Any]:
        """Rewrite every chapter of ``book`` in place and return it."""
        rewriter = self.build_rewriter(context)
        for chapter in iter_chapters(book):
            content = chapter.get("content")
            if not isinstance(content, str):
                continue
            name = str(chapter.get("name") or chapter.get("path") or "<chapter>")
            chapter["content"] = rewriter.rewrite(content, name)
        return book


__all__ = [
    "PREPROCESSOR_NAME",
    "SUPPORTED_RENDERERS",
    "PreprocessorContext",
    "ProtocolError",
    "TypstProcessor",
    "iter_chapters",
    "parse_input",
    "write_output",
]
