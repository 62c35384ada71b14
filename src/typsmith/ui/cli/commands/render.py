"""Implementation of ``typsmith render`` for standalone Markdown files."""

from __future__ import annotations

from typing import Any

import typer

from typsmith.adapters.mdbook import PREPROCESSOR_NAME, PreprocessorContext
from typsmith.core.exceptions import TypsmithError

from .._options import (
    CacheOption,
    CodeTagOption,
    ColorModeOption,
    DisplayPreambleOption,
    FontOption,
    InlinePreambleOption,
    InputPathArgument,
    NoCodeOption,
    NoMathOption,
    NoSystemFontsOption,
    OutputPathOption,
    PreambleOption,
)
from ..state import emit_error
from . import _processor


def _build_table(**options: Any) -> dict[str, Any]:
    return {key: value for key, value in options.items() if value is not None}


def render(
    input_path: InputPathArgument,
    output: OutputPathOption = None,
    preamble: PreambleOption = None,
    inline_preamble: InlinePreambleOption = None,
    display_preamble: DisplayPreambleOption = None,
    font: FontOption = None,
    no_system_fonts: NoSystemFontsOption = False,
    cache: CacheOption = None,
    color_mode: ColorModeOption = "auto",
    code_tag: CodeTagOption = None,
    no_math: NoMathOption = False,
    no_code: NoCodeOption = False,
) -> None:
    """Render the Typst fragments of a Markdown file."""
    table = _build_table(
        preamble=preamble,
        inline_preamble=inline_preamble,
        display_preamble=display_preamble,
        fonts=list(font) if font else None,
        system_fonts=not no_system_fonts,
        cache=str(cache) if cache is not None else None,
        color_mode=color_mode,
        code_tag=code_tag,
        enable_math=not no_math,
        enable_code=not no_code,
    )
    context = PreprocessorContext(
        root=input_path.parent,
        config={"preprocessor": {PREPROCESSOR_NAME: table}},
    )
    processor = _processor.build_processor()
    try:
        rewriter = processor.build_rewriter(context)
        content = rewriter.rewrite(input_path.read_text(encoding="utf-8"), input_path.name)
    except TypsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(content, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")


__all__ = ["render"]
