"""Processor construction shared by the CLI commands."""

from __future__ import annotations

from typsmith.adapters.mdbook import TypstProcessor

from ..diagnostics import CliEmitter


def build_processor() -> TypstProcessor:
    """Return a preprocessor reporting through the CLI emitter."""
    return TypstProcessor(emitter=CliEmitter())


__all__ = ["build_processor"]
