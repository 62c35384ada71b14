"""Implementation of ``typsmith supports``."""

from __future__ import annotations

import typer

from .._options import RendererArgument
from . import _processor


def supports(renderer: RendererArgument) -> None:
    """Exit with status 0 when RENDERER is supported, 1 otherwise."""
    supported = _processor.build_processor().supports_renderer(renderer)
    raise typer.Exit(code=0 if supported else 1)


__all__ = ["supports"]
