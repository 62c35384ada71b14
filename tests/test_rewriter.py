from __future__ import annotations

from pathlib import Path

import pytest

from typsmith.core.config import DEFAULT_PREAMBLE, TypstMathConfig
from typsmith.core.context import Compiler
from typsmith.core.diagnostics import Diagnostic, NullEmitter
from typsmith.core.engine import CompileOutcome, RenderedDocument
from typsmith.core.exceptions import DocumentRenderError
from typsmith.core.packages import PackageCache
from typsmith.core.rewriter import (
    DocumentRewriter,
    Fragment,
    FragmentKind,
    RewriteOptions,
    splice,
    wrap_artifact,
)


class EchoEngine:
    """Render the last source line into a black SVG so output can be traced."""

    def __init__(self) -> None:
        self.bodies: list[str] = []
        self.origins = []

    def compile(self, context):
        body = context.main_source().text.splitlines()[-1]
        self.bodies.append(body)
        self.origins.append(context.origin)
        return CompileOutcome(RenderedDocument((f'<svg fill="#000000">{body}</svg>',)))


class FailingEngine:
    def compile(self, context):
        return CompileOutcome(None, errors=(Diagnostic.error("unknown variable: foo"),))


class RecordingEmitter(NullEmitter):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def event(self, name, payload) -> None:
        self.events.append((name, dict(payload)))


def _rewriter(tmp_path: Path, engine=None, emitter=None, **options) -> DocumentRewriter:
    compiler = Compiler(engine or EchoEngine(), packages=PackageCache(tmp_path))
    return DocumentRewriter(compiler, RewriteOptions(**options), emitter=emitter)


def test_inline_math_is_replaced_by_inline_svg(tmp_path: Path) -> None:
    rewriter = _rewriter(tmp_path)

    result = rewriter.rewrite("See $a+b$ and more.", "intro")

    assert result == (
        'See <span class="typst-inline"><svg fill="currentColor">$a+b$</svg></span> and more.'
    )


def test_static_color_mode_keeps_black(tmp_path: Path) -> None:
    result = _rewriter(tmp_path, color_mode="static").rewrite("$x$")
    assert 'fill="#000000"' in result


def test_display_math_is_wrapped_in_a_div(tmp_path: Path) -> None:
    result = _rewriter(tmp_path).rewrite("Before $$ x^2 $$ after")
    assert result == (
        'Before <div class="typst-display"><svg fill="currentColor">$ x^2 $</svg></div> after'
    )


def test_code_block_with_render_tag_is_compiled(tmp_path: Path) -> None:
    engine = EchoEngine()
    text = "Intro\n\n```typst,render\n#rect()\n```\n"

    result = _rewriter(tmp_path, engine).rewrite(text)

    assert result == (
        'Intro\n\n<div class="typst-display"><svg fill="currentColor">#rect()</svg></div>\n'
    )
    assert engine.origins[0].line == 3


def test_code_block_with_other_tag_is_untouched(tmp_path: Path) -> None:
    engine = EchoEngine()
    text = "```typst\n#rect()\n```\n"

    assert _rewriter(tmp_path, engine).rewrite(text) == text
    assert engine.bodies == []


def test_custom_code_tag(tmp_path: Path) -> None:
    text = "```diagram\n#circle()\n```"
    result = _rewriter(tmp_path, code_tag="diagram").rewrite(text)
    assert result.startswith('<div class="typst-display">')


def test_disabled_math_leaves_math_untouched(tmp_path: Path) -> None:
    text = "Inline $x$ and\n\n```typst,render\n#rect()\n```"
    result = _rewriter(tmp_path, enable_math=False).rewrite(text)

    assert result.startswith("Inline $x$ and\n\n")
    assert "#rect()</svg>" in result


def test_disabled_code_leaves_blocks_untouched(tmp_path: Path) -> None:
    text = "```typst,render\n#rect()\n```"
    assert _rewriter(tmp_path, enable_code=False).rewrite(text) == text


def test_fragments_are_rendered_last_to_first(tmp_path: Path) -> None:
    engine = EchoEngine()
    text = "$a$ then $$b$$ then $c$"

    result = _rewriter(tmp_path, engine).rewrite(text)

    assert engine.bodies == ["$c$", "$ b $", "$a$"]
    assert result.index("$a$") < result.index("$ b $") < result.index("$c$")
    assert " then " in result
    assert result.count("<svg") == 3


def test_fragment_sources_include_the_preamble(tmp_path: Path) -> None:
    rewriter = _rewriter(tmp_path, inline_preamble="#set text(red)\n#let k = 1")

    (fragment,) = rewriter.fragments("Text $k$")

    assert fragment.kind is FragmentKind.INLINE
    assert fragment.source == "#set text(red)\n#let k = 1\n$k$"
    assert fragment.preamble_line_count == 2
    assert fragment.span == (5, 8)


def test_document_without_fragments_is_returned_unchanged(tmp_path: Path) -> None:
    engine = EchoEngine()
    text = "# Heading\n\nPlain text.\n"

    assert _rewriter(tmp_path, engine).rewrite(text) == text
    assert engine.bodies == []


def test_failure_names_the_document(tmp_path: Path) -> None:
    rewriter = _rewriter(tmp_path, FailingEngine())

    with pytest.raises(DocumentRenderError) as excinfo:
        rewriter.rewrite("Broken $foo$", "Chapter 1")

    assert str(excinfo.value) == (
        "Failed to render math in chapter 'Chapter 1': error: unknown variable: foo"
    )


def test_chapter_rendered_event(tmp_path: Path) -> None:
    emitter = RecordingEmitter()
    _rewriter(tmp_path, emitter=emitter).rewrite("$a$ $b$", "intro")

    assert emitter.events == [("chapter_rendered", {"chapter": "intro", "fragments": 2})]


def test_origin_line_points_at_the_fragment(tmp_path: Path) -> None:
    engine = EchoEngine()
    _rewriter(tmp_path, engine).rewrite("line one\n\nline three $x$", "intro")

    (origin,) = engine.origins
    assert origin.name == "intro"
    assert origin.line == 2
    assert origin.preamble_lines == 1


def test_options_from_config() -> None:
    config = TypstMathConfig(preamble="#p", display_preamble="#d", color_mode="static")
    options = RewriteOptions.from_config(config)

    assert options.inline_preamble == "#p"
    assert options.display_preamble == "#d"
    assert options.color_mode == "static"


def test_splice_replaces_spans_independently() -> None:
    fragments = [
        Fragment((1, 2), "", FragmentKind.INLINE, 1),
        Fragment((4, 6), "", FragmentKind.INLINE, 1),
    ]
    assert splice("abcdef", fragments, lambda fragment: "XYZ") == "aXYZcdXYZ"


def test_wrap_artifact() -> None:
    assert wrap_artifact("<svg/>", FragmentKind.CODE) == '<div class="typst-display"><svg/></div>'
    assert wrap_artifact("<svg/>", FragmentKind.INLINE) == '<span class="typst-inline"><svg/></span>'


def test_footnote_math_is_rendered(tmp_path: Path) -> None:
    text = "Body[^1] text.\n\n[^1]: Note with $x$.\n\nLater paragraph.\n"

    result = _rewriter(tmp_path).rewrite(text)

    assert "[^1]: Note with <span class=\"typst-inline\">" in result
    assert result.endswith("\n\nLater paragraph.\n")


def test_code_spans_are_never_rewritten(tmp_path: Path) -> None:
    text = "A `code $x$\nspan` and $x$ here.\n"

    result = _rewriter(tmp_path).rewrite(text)

    assert result == (
        "A `code $x$\nspan` and "
        '<span class="typst-inline"><svg fill="currentColor">$x$</svg></span> here.\n'
    )


def test_table_cell_math_is_rendered(tmp_path: Path) -> None:
    engine = EchoEngine()
    text = "| a | b |\n| --- | --- |\n| $x$ | $y$ |\n"

    result = _rewriter(tmp_path, engine).rewrite(text)

    assert engine.bodies == ["$y$", "$x$"]
    assert result.startswith("| a | b |\n| --- | --- |\n| <span")
    assert result.endswith("</span> |\n")


def test_code_block_body_keeps_its_whitespace(tmp_path: Path) -> None:
    body = "#let a = 1\n\n    #rect(width: a * 1cm)  \n"
    text = f"Before\n\n```typst,render\n{body}```\n"

    (fragment,) = _rewriter(tmp_path).fragments(text)

    assert fragment.kind is FragmentKind.CODE
    assert fragment.source == f"{DEFAULT_PREAMBLE}\n{body}"
    assert text[fragment.start : fragment.end] == f"```typst,render\n{body}```"


def test_code_block_with_other_language_produces_no_fragment(tmp_path: Path) -> None:
    text = "```other-lang\n$x$\n```\n"
    assert _rewriter(tmp_path).fragments(text) == []
