"""Font discovery helpers used to populate compilation contexts."""

from __future__ import annotations

from .loader import Font, FontBook, FontCollection, FontInfo, load_fonts


__all__ = ["Font", "FontBook", "FontCollection", "FontInfo", "load_fonts"]
