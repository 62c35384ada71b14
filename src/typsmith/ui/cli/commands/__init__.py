"""CLI command implementations exposed via `typsmith.ui.cli`."""

from __future__ import annotations

from .preprocess import preprocess
from .render import render
from .supports import supports


__all__ = ["preprocess", "render", "supports"]
