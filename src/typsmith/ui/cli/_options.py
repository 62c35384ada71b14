"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


RENDERING_PANEL = "Rendering"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

VerbosityOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (repeat for debug output).",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

RendererArgument = Annotated[
    str,
    typer.Argument(help="Name of the mdBook renderer to check (e.g. html)."),
]

InputPathArgument = Annotated[
    Path,
    typer.Argument(
        metavar="INPUT",
        help="Markdown document whose Typst fragments should be rendered.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]

OutputPathOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Write the rewritten document to this file instead of stdout.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

PreambleOption = Annotated[
    str | None,
    typer.Option("--preamble", help="Typst code prepended to every fragment.", rich_help_panel=RENDERING_PANEL),
]

InlinePreambleOption = Annotated[
    str | None,
    typer.Option("--inline-preamble", help="Preamble for inline math.", rich_help_panel=RENDERING_PANEL),
]

DisplayPreambleOption = Annotated[
    str | None,
    typer.Option(
        "--display-preamble",
        help="Preamble for display math and rendered code blocks.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

FontOption = Annotated[
    list[str] | None,
    typer.Option(
        "--font",
        help="Font file or directory to load (repeatable).",
        rich_help_panel=RENDERING_PANEL,
    ),
]

NoSystemFontsOption = Annotated[
    bool,
    typer.Option(
        "--no-system-fonts",
        help="Do not load the fonts installed on the system.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

CacheOption = Annotated[
    Path | None,
    typer.Option("--cache", help="Root directory of the Typst package cache.", rich_help_panel=RENDERING_PANEL),
]

ColorModeOption = Annotated[
    str,
    typer.Option(
        "--color-mode",
        help="'auto' makes black paint follow the page color, 'static' keeps it.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

CodeTagOption = Annotated[
    str | None,
    typer.Option("--code-tag", help="Fence info string of rendered code blocks.", rich_help_panel=RENDERING_PANEL),
]

NoMathOption = Annotated[
    bool,
    typer.Option("--no-math", help="Leave math untouched.", rich_help_panel=RENDERING_PANEL),
]

NoCodeOption = Annotated[
    bool,
    typer.Option("--no-code", help="Leave Typst code blocks untouched.", rich_help_panel=RENDERING_PANEL),
]


__all__ = [
    "CacheOption",
    "CodeTagOption",
    "ColorModeOption",
    "DebugOption",
    "DisplayPreambleOption",
    "FontOption",
    "InlinePreambleOption",
    "InputPathArgument",
    "NoCodeOption",
    "NoMathOption",
    "NoSystemFontsOption",
    "OutputPathOption",
    "PreambleOption",
    "RendererArgument",
    "VerbosityOption",
]
