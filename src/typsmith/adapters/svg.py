"""Post-processing of SVG markup produced by the engine."""

from __future__ import annotations

from typing import Literal


ColorMode = Literal["auto", "static"]

INHERITED_COLOR = "currentColor"

_SOLID_BLACK_ATTRIBUTES = (
    ('fill="#000000"', f'fill="{INHERITED_COLOR}"'),
    ('stroke="#000000"', f'stroke="{INHERITED_COLOR}"'),
)


def apply_color_mode(svg: str, mode: ColorMode) -> str:
    """Rewrite solid black paint to ``currentColor`` when ``mode`` is ``auto``.

    Only the literal ``#000000`` attribute values are rewritten; gradients and
    near-black colors are left untouched.
    """
    if mode == "static":
        return svg
    for original, replacement in _SOLID_BLACK_ATTRIBUTES:
        svg = svg.replace(original, replacement)
    return svg


__all__ = ["INHERITED_COLOR", "ColorMode", "apply_color_mode"]
