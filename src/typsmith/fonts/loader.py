"""Discover font files and expose them to compilation contexts."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from functools import cached_property
import logging
import os
from pathlib import Path
import shutil
import struct
import subprocess


logger = logging.getLogger(__name__)

FONT_SUFFIXES = frozenset({".ttf", ".otf", ".ttc", ".otc"})

_SFNT_TAGS = {b"\x00\x01\x00\x00", b"OTTO", b"true", b"typ1"}
_COLLECTION_TAG = b"ttcf"


def _guess_style_from_filename(path: Path) -> str:
    name = path.name.casefold()
    if "bold" in name and ("italic" in name or "oblique" in name):
        return "bold italic"
    if "bold" in name:
        return "bold"
    if "italic" in name or "oblique" in name:
        return "italic"
    return "regular"


def _guess_family_from_filename(path: Path) -> str:
    stem = path.stem
    family = stem.split("-", 1)[0]
    return family or stem


@dataclass(frozen=True, slots=True)
class FontInfo:
    """Metadata describing one face inside a font file."""

    path: Path
    index: int
    family: str
    style: str


@dataclass(eq=False)
class Font:
    """Lazily loaded font face."""

    info: FontInfo

    @property
    def index(self) -> int:
        return self.info.index

    @cached_property
    def data(self) -> bytes:
        return self.info.path.read_bytes()


@dataclass(slots=True)
class FontBook:
    """Ordered metadata of every loaded face, plus the paths they came from."""

    infos: list[FontInfo] = field(default_factory=list)
    sources: list[Path] = field(default_factory=list)

    def push(self, info: FontInfo) -> None:
        self.infos.append(info)

    def families(self) -> set[str]:
        return {info.family for info in self.infos}

    def __len__(self) -> int:
        return len(self.infos)


def face_count(path: Path) -> int:
    """Return the number of faces in a font file, raising ``ValueError`` if invalid."""
    with path.open("rb") as handle:
        header = handle.read(12)
    tag = header[:4]
    if tag == _COLLECTION_TAG:
        if len(header) < 12:
            raise ValueError("truncated font collection header")
        (count,) = struct.unpack(">I", header[8:12])
        return count
    if tag in _SFNT_TAGS:
        return 1
    raise ValueError("unrecognised font header")


def iter_font_files(path: Path) -> Iterator[Path]:
    """Yield font files from ``path``, which may be a file or a directory."""
    if path.is_file():
        if path.suffix.lower() in FONT_SUFFIXES:
            yield path
        return
    if not path.is_dir():
        logger.warning("Font path %s does not exist, skipping", path)
        return
    for candidate in sorted(path.rglob("*")):
        if candidate.is_file() and candidate.suffix.lower() in FONT_SUFFIXES:
            yield candidate


def system_font_files() -> list[Path]:
    """Return the font files known to fontconfig."""
    if shutil.which("fc-list") is None or os.environ.get("TYPSMITH_SKIP_SYSTEM_FONTS"):
        return []
    try:
        proc = subprocess.run(
            ["fc-list", "-f", "%{file}\n"],
            check=True,
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.warning("Unable to list system fonts: %s", exc)
        return []
    files = {Path(line.strip()) for line in proc.stdout.splitlines() if line.strip()}
    return sorted(path for path in files if path.suffix.lower() in FONT_SUFFIXES)


class FontCollection:
    """Fonts available to the engine, indexed in load order."""

    def __init__(self) -> None:
        self.book = FontBook()
        self.fonts: list[Font] = []
        self._seen: set[tuple[Path, int]] = set()

    def __len__(self) -> int:
        return len(self.fonts)

    def get(self, index: int) -> Font | None:
        if 0 <= index < len(self.fonts):
            return self.fonts[index]
        return None

    def load_file(self, path: Path) -> int:
        """Register every face in ``path``; problems are logged and skipped."""
        try:
            faces = face_count(path)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load font info for %s: %s, skipping", path, exc)
            return 0
        resolved = path.resolve()
        family = _guess_family_from_filename(path)
        style = _guess_style_from_filename(path)
        added = 0
        for index in range(faces):
            key = (resolved, index)
            if key in self._seen:
                continue
            self._seen.add(key)
            info = FontInfo(path=resolved, index=index, family=family, style=style)
            self.book.push(info)
            self.fonts.append(Font(info))
            added += 1
        return added

    def load_paths(self, paths: Iterable[Path]) -> int:
        """Load fonts from files or directories, in priority order."""
        added = 0
        for path in paths:
            self.book.sources.append(path)
            for candidate in iter_font_files(path):
                added += self.load_file(candidate)
        return added

    def load_system_fonts(self) -> int:
        added = 0
        for candidate in system_font_files():
            added += self.load_file(candidate)
        return added


def load_fonts(paths: Iterable[Path], *, system_fonts: bool = True) -> FontCollection:
    """Build a collection from configured paths, then system fonts at lower priority."""
    collection = FontCollection()
    collection.load_paths(paths)
    if system_fonts:
        collection.load_system_fonts()
    logger.debug("Loaded %d font face(s)", len(collection))
    return collection


__all__ = [
    "FONT_SUFFIXES",
    "Font",
    "FontBook",
    "FontCollection",
    "FontInfo",
    "face_count",
    "iter_font_files",
    "load_fonts",
    "system_font_files",
]
