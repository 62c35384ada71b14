"""Configuration model for the ``[preprocessor.typst-math]`` table.

`preamble` (`str`)
: Typst code prepended to every fragment. The default sets up an auto-sized,
  transparent page with a small margin.

`inline_preamble` (`str | None`)
: Preamble used for inline math (`$...$`). Falls back to `preamble`.

`display_preamble` (`str | None`)
: Preamble used for display math (`$$...$$`) and rendered code blocks. Falls
  back to `preamble`.

`fonts` (`str | list[str] | None`)
: Font files or directories to load before system fonts. Relative paths are
  resolved against the book root.

`system_fonts` (`bool`)
: Also load the fonts known to fontconfig, with lower priority.

`cache` (`str | None`)
: Root directory of the Typst package cache. Relative paths (and the empty
  default) are resolved against the book root.

`color_mode` (`"auto" | "static"`)
: `auto` rewrites solid black fills and strokes to `currentColor` so rendered
  math follows the page theme; `static` keeps the colors Typst produced.

`code_tag` (`str`)
: Fence info string selecting code blocks rendered as Typst documents.

`enable_math` / `enable_code` (`bool`)
: Toggle math rendering and code-block rendering independently.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError


DEFAULT_PREAMBLE = "#set page(width: auto, height: auto, margin: 0.5em, fill: none)"
DEFAULT_CODE_TAG = "typst,render"


class TypstMathConfig(BaseModel):
    """Validated preprocessor configuration."""

    # mdBook stores ``command``, ``renderers`` and ``before``/``after`` alongside.
    model_config = ConfigDict(extra="ignore")

    preamble: str = DEFAULT_PREAMBLE
    inline_preamble: str | None = None
    display_preamble: str | None = None
    fonts: list[str] = Field(default_factory=list)
    system_fonts: bool = True
    cache: str | None = None
    color_mode: Literal["auto", "static"] = "auto"
    code_tag: str = DEFAULT_CODE_TAG
    enable_math: bool = True
    enable_code: bool = True

    @field_validator("fonts", mode="before")
    @classmethod
    def _coerce_fonts(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @property
    def inline(self) -> str:
        return self.inline_preamble if self.inline_preamble is not None else self.preamble

    @property
    def display(self) -> str:
        return self.display_preamble if self.display_preamble is not None else self.preamble

    def font_paths(self, root: Path) -> list[Path]:
        return [root / Path(entry).expanduser() for entry in self.fonts]

    def cache_root(self, root: Path) -> Path:
        return root / Path(self.cache or "").expanduser()


def load_config(payload: Mapping[str, Any] | None) -> TypstMathConfig:
    """Validate a raw configuration table, wrapping errors in :class:`ConfigError`."""
    try:
        return TypstMathConfig.model_validate(dict(payload or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid typst-math configuration: {exc}") from exc


__all__ = ["DEFAULT_CODE_TAG", "DEFAULT_PREAMBLE", "TypstMathConfig", "load_config"]
