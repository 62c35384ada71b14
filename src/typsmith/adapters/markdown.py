"""Markdown scanning built on markdown-it-py.

The tokenizer reports block positions as line ranges and does not locate
inline tokens at all. :func:`scan` converts its token stream into
:class:`ScanEvent` records carrying string offsets into the original document:
block spans come from the token line maps, inline math spans are located
within the line range of their enclosing inline token.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
import re

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin


logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_WHITESPACE = re.compile(r"\s+")


class EventKind(Enum):
    """Scan events relevant to fragment discovery."""

    INLINE_MATH = "inline_math"
    DISPLAY_MATH = "display_math"
    CODE_BLOCK_START = "code_block_start"
    TEXT = "text"
    CODE_BLOCK_END = "code_block_end"


@dataclass(frozen=True, slots=True)
class ScanEvent:
    """Tokenizer event with its half-open ``(start, end)`` span."""

    kind: EventKind
    span: tuple[int, int]
    text: str = ""
    info: str = ""


def create_parser() -> MarkdownIt:
    """Return a CommonMark parser with tables, footnotes, tasklists and math."""
    md = MarkdownIt("commonmark").enable(["table", "strikethrough"])
    md.use(footnote_plugin)
    md.use(tasklists_plugin)
    md.use(dollarmath_plugin, double_inline=True)
    return md


class _LineIndex:
    def __init__(self, text: str) -> None:
        self.text = text
        self.starts = [0, *(match.end() for match in _LINE_BREAK.finditer(text))]

    def line_start(self, line: int) -> int:
        if line >= len(self.starts):
            return len(self.text)
        return self.starts[line]

    def block_span(self, token: Token, marker: str) -> tuple[int, int]:
        if token.map is None:
            raise ValueError(f"token {token.type!r} carries no source map")
        first, last = token.map
        start = self.line_start(first)
        line_end = self.line_start(first + 1)
        if marker:
            found = self.text.find(marker, start, line_end)
            if found >= 0:
                start = found
        end = self.line_start(last)
        while end > start and self.text[end - 1] in "\r\n":
            end -= 1
        return start, end


def _find_inline(text: str, needle: str, start: int, end: int) -> tuple[int, int] | None:
    found = text.find(needle, start, end)
    if found >= 0:
        return found, found + len(needle)
    # Content spanning lines inside quotes or lists lost its line prefixes.
    parts = [re.escape(part) for part in _WHITESPACE.split(needle)]
    pattern = re.compile(r"[\s>]+".join(parts))
    match = pattern.search(text, start, end)
    if match is None:
        return None
    return match.start(), match.end()


def _code_span_pattern(markup: str) -> re.Pattern[str]:
    fence = re.escape(markup)
    return re.compile(rf"(?<!`){fence}(?!`).*?(?<!`){fence}(?!`)", re.DOTALL)


def _scan_inline(
    token: Token, index: _LineIndex, floor: int
) -> tuple[list[ScanEvent], int]:
    text = index.text
    if token.map is not None:
        start = index.line_start(token.map[0])
        end = index.line_start(token.map[1])
        # Cells of one table row share their lines; continue after the previous one.
        if start <= floor < end:
            start = floor
    else:
        start, end = floor, len(text)

    events: list[ScanEvent] = []
    cursor = start
    for child in token.children or ():
        if child.type == "code_inline":
            # The token content is normalized, so match the raw backtick runs.
            match = _code_span_pattern(child.markup or "`").search(text, cursor, end)
            if match is not None:
                cursor = match.end()
            continue
        if child.type == "math_inline":
            needle, kind = f"${child.content}$", EventKind.INLINE_MATH
        elif child.type == "math_inline_double":
            needle, kind = f"$${child.content}$$", EventKind.DISPLAY_MATH
        else:
            continue
        span = _find_inline(text, needle, cursor, end)
        if span is None:
            logger.debug("Unable to locate math %r in source, skipping", child.content)
            continue
        events.append(ScanEvent(kind, span, text=child.content))
        cursor = span[1]
    return events, cursor


def iter_events(text: str, tokens: Sequence[Token]) -> Iterator[ScanEvent]:
    """Convert markdown-it tokens of ``text`` into span-tagged scan events."""
    index = _LineIndex(text)
    floor = 0
    for token in tokens:
        if token.type == "inline":
            events, floor = _scan_inline(token, index, floor)
            yield from events
        elif token.type in ("math_block", "math_block_label") and token.map is not None:
            span = index.block_span(token, "$$")
            floor = span[1]
            yield ScanEvent(EventKind.DISPLAY_MATH, span, text=token.content)
        elif token.type == "fence" and token.map is not None:
            span = index.block_span(token, token.markup)
            floor = span[1]
            info = token.info.strip()
            yield ScanEvent(EventKind.CODE_BLOCK_START, span, info=info)
            yield ScanEvent(EventKind.TEXT, span, text=token.content)
            yield ScanEvent(EventKind.CODE_BLOCK_END, span, info=info)


def scan(text: str, parser: MarkdownIt | None = None) -> list[ScanEvent]:
    """Tokenize ``text`` and return its scan events in document order."""
    md = parser or create_parser()
    return list(iter_events(text, md.parse(text)))


__all__ = ["EventKind", "ScanEvent", "create_parser", "iter_events", "scan"]
