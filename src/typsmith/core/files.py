"""Virtual file identifiers, parsed sources and the read-through file store."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from itertools import count
from pathlib import Path, PurePosixPath
from threading import RLock

from .exceptions import FileAccessError, InvalidUtf8Error, SourceNotFoundError
from .packages import PackageCache, PackageSpec


_DETACHED_IDS = count(1)


@dataclass(frozen=True, slots=True)
class FileId:
    """Identify a virtual file, either inside a package or detached."""

    package: PackageSpec | None
    path: str
    detached: int | None = None

    @classmethod
    def detached_source(cls) -> FileId:
        """Return a fresh identifier for a synthesized main source."""
        return cls(package=None, path="/main.typ", detached=next(_DETACHED_IDS))

    @classmethod
    def in_package(cls, package: PackageSpec, path: str) -> FileId:
        rooted = path if path.startswith("/") else f"/{path}"
        return cls(package=package, path=rooted)

    @property
    def rootless(self) -> str:
        return self.path.lstrip("/")

    def resolve(self, root: Path) -> Path | None:
        """Return the on-disk path below ``root`` or ``None`` when it escapes it."""
        parts: list[str] = []
        for part in PurePosixPath(self.rootless).parts:
            if part in ("", "."):
                continue
            if part == "..":
                if not parts:
                    return None
                parts.pop()
                continue
            parts.append(part)
        return root.joinpath(*parts)

    def __str__(self) -> str:
        if self.package is not None:
            return f"{self.package}{self.path}"
        return self.rootless


class Source:
    """Text file together with a UTF-8 byte line index.

    Offsets are byte offsets into the UTF-8 encoding of the text, which is the
    unit engines use to report spans. Columns are counted in characters.
    """

    def __init__(self, file_id: FileId, text: str) -> None:
        self.id = file_id
        self.text = text
        self._encoded = text.encode("utf-8")
        starts = [0]
        starts.extend(index + 1 for index, byte in enumerate(self._encoded) if byte == 0x0A)
        self._line_starts = starts

    def __repr__(self) -> str:
        return f"Source({self.id!s}, {len(self._encoded)} bytes)"

    @property
    def len_bytes(self) -> int:
        return len(self._encoded)

    @property
    def len_lines(self) -> int:
        return len(self._line_starts)

    def byte_to_line(self, offset: int) -> int | None:
        if offset < 0 or offset > len(self._encoded):
            return None
        return bisect_right(self._line_starts, offset) - 1

    def line_to_range(self, line: int) -> tuple[int, int] | None:
        if line < 0 or line >= len(self._line_starts):
            return None
        start = self._line_starts[line]
        if line + 1 < len(self._line_starts):
            end = self._line_starts[line + 1]
        else:
            end = len(self._encoded)
        return start, end

    def byte_to_column(self, offset: int) -> int | None:
        line = self.byte_to_line(offset)
        if line is None:
            return None
        start = self._line_starts[line]
        try:
            return len(self._encoded[start:offset].decode("utf-8"))
        except UnicodeDecodeError:
            return None

    def line_text(self, line: int) -> str | None:
        """Return the text of ``line`` without its line terminator."""
        bounds = self.line_to_range(line)
        if bounds is None:
            return None
        start, end = bounds
        return self._encoded[start:end].decode("utf-8", errors="replace").rstrip("\r\n")


@dataclass(slots=True)
class CachedFile:
    """Raw bytes of a file and its lazily parsed source."""

    data: bytes
    source: Source | None = None


class FileStore:
    """Read-through cache from file identifiers to bytes and sources.

    Entries are inserted once and never evicted or overwritten, so a given
    identifier yields the same bytes for the lifetime of the store.
    """

    def __init__(self, packages: PackageCache) -> None:
        self.packages = packages
        self._files: dict[FileId, CachedFile] = {}
        self._lock = RLock()

    def __contains__(self, file_id: object) -> bool:
        with self._lock:
            return file_id in self._files

    def get_bytes(self, file_id: FileId) -> bytes:
        with self._lock:
            cached = self._files.get(file_id)
            if cached is not None:
                return cached.data

        if file_id.package is None:
            raise SourceNotFoundError(file_id.rootless)

        package_dir = self.packages.resolve(file_id.package)
        path = file_id.resolve(package_dir)
        if path is None or not path.is_file():
            raise SourceNotFoundError(file_id.rootless)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FileAccessError(f"failed to read {path}: {exc}") from exc

        with self._lock:
            cached = self._files.setdefault(file_id, CachedFile(data))
            return cached.data

    def get_source(self, file_id: FileId) -> Source:
        with self._lock:
            cached = self._files.get(file_id)
            if cached is not None and cached.source is not None:
                return cached.source

        data = self.get_bytes(file_id)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidUtf8Error(file_id.rootless) from exc
        source = Source(file_id, text)

        with self._lock:
            cached = self._files[file_id]
            if cached.source is None:
                cached.source = source
            return cached.source


__all__ = ["CachedFile", "FileId", "FileStore", "Source"]
