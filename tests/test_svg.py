from __future__ import annotations

from typsmith.adapters.svg import apply_color_mode


SVG = '<svg><path fill="#000000" stroke="#000000"/><path fill="#000001"/></svg>'


def test_auto_mode_inherits_page_color() -> None:
    assert apply_color_mode(SVG, "auto") == (
        '<svg><path fill="currentColor" stroke="currentColor"/><path fill="#000001"/></svg>'
    )


def test_static_mode_is_identity() -> None:
    assert apply_color_mode(SVG, "static") == SVG
