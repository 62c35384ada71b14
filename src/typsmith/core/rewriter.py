"""Locate Typst fragments in a Markdown document and splice rendered SVG back.

Fragments are discovered in a single pass over the scan events, then rendered
from the last one to the first. Every span refers to the original document, so
replacing later spans first keeps the offsets of pending spans valid no matter
how the length of the rendered artifacts differs from the source fragments.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
import logging

from markdown_it import MarkdownIt

from ..adapters.markdown import EventKind, ScanEvent, create_parser, scan
from ..adapters.svg import ColorMode, apply_color_mode
from .config import DEFAULT_CODE_TAG, DEFAULT_PREAMBLE, TypstMathConfig
from .context import Compiler, SourceOrigin
from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import DocumentRenderError, TypsmithError


logger = logging.getLogger(__name__)

INLINE_CLASS = "typst-inline"
DISPLAY_CLASS = "typst-display"


class FragmentKind(Enum):
    INLINE = "inline"
    DISPLAY = "display"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class Fragment:
    """A Typst source to render and the document span it replaces."""

    span: tuple[int, int]
    source: str
    kind: FragmentKind
    preamble_line_count: int

    @property
    def start(self) -> int:
        return self.span[0]

    @property
    def end(self) -> int:
        return self.span[1]


@dataclass(frozen=True, slots=True)
class RewriteOptions:
    """Settings controlling fragment discovery and artifact post-processing."""

    inline_preamble: str = DEFAULT_PREAMBLE
    display_preamble: str = DEFAULT_PREAMBLE
    code_tag: str = DEFAULT_CODE_TAG
    enable_math: bool = True
    enable_code: bool = True
    color_mode: ColorMode = "auto"

    @classmethod
    def from_config(cls, config: TypstMathConfig) -> RewriteOptions:
        return cls(
            inline_preamble=config.inline,
            display_preamble=config.display,
            code_tag=config.code_tag,
            enable_math=config.enable_math,
            enable_code=config.enable_code,
            color_mode=config.color_mode,
        )


class ScanState(Enum):
    SCANNING = "scanning"
    IN_CODE_BLOCK = "in_code_block"


def _line_count(preamble: str) -> int:
    return preamble.count("\n") + 1


@dataclass(slots=True)
class FragmentCollector:
    """Two-state machine turning scan events into fragments."""

    options: RewriteOptions
    state: ScanState = ScanState.SCANNING
    fragments: list[Fragment] = field(default_factory=list)
    _code: list[str] = field(default_factory=list)
    _code_span: tuple[int, int] | None = None

    def feed(self, event: ScanEvent) -> None:
        options = self.options
        if self.state is ScanState.IN_CODE_BLOCK:
            if event.kind is EventKind.TEXT:
                self._code.append(event.text)
            elif event.kind is EventKind.CODE_BLOCK_END:
                self._close_code_block(event)
            return

        if event.kind is EventKind.INLINE_MATH and options.enable_math:
            self.fragments.append(
                Fragment(
                    span=event.span,
                    source=f"{options.inline_preamble}\n${event.text}$",
                    kind=FragmentKind.INLINE,
                    preamble_line_count=_line_count(options.inline_preamble),
                )
            )
        elif event.kind is EventKind.DISPLAY_MATH and options.enable_math:
            self.fragments.append(
                Fragment(
                    span=event.span,
                    source=f"{options.display_preamble}\n$ {event.text.strip()} $",
                    kind=FragmentKind.DISPLAY,
                    preamble_line_count=_line_count(options.display_preamble),
                )
            )
        elif (
            event.kind is EventKind.CODE_BLOCK_START
            and options.enable_code
            and event.info == options.code_tag
        ):
            self.state = ScanState.IN_CODE_BLOCK
            self._code = []
            self._code_span = event.span

    def _close_code_block(self, event: ScanEvent) -> None:
        start = self._code_span[0] if self._code_span else event.span[0]
        body = "".join(self._code)
        self.fragments.append(
            Fragment(
                span=(start, event.span[1]),
                source=f"{self.options.display_preamble}\n{body}",
                kind=FragmentKind.CODE,
                preamble_line_count=_line_count(self.options.display_preamble),
            )
        )
        self.state = ScanState.SCANNING
        self._code = []
        self._code_span = None


def collect_fragments(events: Iterable[ScanEvent], options: RewriteOptions) -> list[Fragment]:
    """Return the fragments found in ``events``, ordered by span start."""
    collector = FragmentCollector(options)
    for event in events:
        collector.feed(event)
    return sorted(collector.fragments, key=lambda fragment: fragment.span)


def wrap_artifact(svg: str, kind: FragmentKind) -> str:
    """Wrap rendered SVG in the container matching the fragment kind."""
    if kind is FragmentKind.INLINE:
        return f'<span class="{INLINE_CLASS}">{svg}</span>'
    return f'<div class="{DISPLAY_CLASS}">{svg}</div>'


def splice(text: str, fragments: Iterable[Fragment], render) -> str:
    """Replace every fragment span of ``text`` with ``render(fragment)``.

    Fragments are applied by descending span start and the working copy is
    rebuilt on each step.
    """
    content = text
    for fragment in sorted(fragments, key=lambda item: item.start, reverse=True):
        replacement = render(fragment)
        content = f"{content[: fragment.start]}{replacement}{content[fragment.end :]}"
    return content


class DocumentRewriter:
    """Render the Typst fragments of Markdown documents through a compiler."""

    def __init__(
        self,
        compiler: Compiler,
        options: RewriteOptions | None = None,
        *,
        parser: MarkdownIt | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.compiler = compiler
        self.options = options or RewriteOptions()
        self._parser = parser or create_parser()
        self._emitter = emitter or NullEmitter()

    def fragments(self, text: str) -> list[Fragment]:
        return collect_fragments(scan(text, self._parser), self.options)

    def rewrite(self, text: str, name: str = "<document>") -> str:
        """Return ``text`` with every fragment replaced by its rendered SVG.

        The first fragment that fails aborts the document with a
        :class:`DocumentRenderError` naming ``name``.
        """
        fragments = self.fragments(text)
        if not fragments:
            return text

        def _render(fragment: Fragment) -> str:
            origin = SourceOrigin(
                name=name,
                line=text.count("\n", 0, fragment.start)
                + (1 if fragment.kind is FragmentKind.CODE else 0),
                preamble_lines=fragment.preamble_line_count,
            )
            try:
                svg = self.compiler.render(fragment.source, origin=origin)
            except TypsmithError as exc:
                raise DocumentRenderError(name, str(exc)) from exc
            return wrap_artifact(apply_color_mode(svg, self.options.color_mode), fragment.kind)

        content = splice(text, fragments, _render)
        self._emitter.event("chapter_rendered", {"chapter": name, "fragments": len(fragments)})
        logger.debug("Rendered %d fragment(s) in %s", len(fragments), name)
        return content


__all__ = [
    "DISPLAY_CLASS",
    "INLINE_CLASS",
    "DocumentRewriter",
    "Fragment",
    "FragmentCollector",
    "FragmentKind",
    "RewriteOptions",
    "ScanState",
    "collect_fragments",
    "splice",
    "wrap_artifact",
]
