"""mdBook preprocessing: book JSON on stdin, processed book JSON on stdout."""

from __future__ import annotations

import sys

import typer

from typsmith.adapters.mdbook import parse_input, write_output
from typsmith.core.exceptions import TypsmithError

from ..state import emit_error
from . import _processor


def preprocess() -> None:
    """Render the Typst fragments of the book read from stdin."""
    processor = _processor.build_processor()
    try:
        context, book = parse_input(sys.stdin)
        result = processor.run(context, book)
    except TypsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    write_output(result, sys.stdout)
    sys.stdout.flush()


__all__ = ["preprocess"]
