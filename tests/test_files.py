from __future__ import annotations

from pathlib import Path

import pytest

from typsmith.core.exceptions import InvalidUtf8Error, SourceNotFoundError
from typsmith.core.files import FileId, FileStore, Source
from typsmith.core.packages import PackageCache, PackageSpec


SPEC = PackageSpec("preview", "demo", "0.1.0")


def _store(tmp_path: Path, files: dict[str, bytes]) -> FileStore:
    package_dir = tmp_path / SPEC.subdir
    for name, data in files.items():
        target = package_dir / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    package_dir.mkdir(parents=True, exist_ok=True)
    return FileStore(PackageCache(tmp_path))


def test_get_bytes_reads_package_file_once(tmp_path: Path) -> None:
    store = _store(tmp_path, {"src/lib.typ": b"#let x = 1\n"})
    file_id = FileId.in_package(SPEC, "src/lib.typ")

    assert store.get_bytes(file_id) == b"#let x = 1\n"
    (tmp_path / SPEC.subdir / "src" / "lib.typ").write_bytes(b"changed")

    assert store.get_bytes(file_id) == b"#let x = 1\n"
    assert file_id in store


def test_get_source_is_memoized(tmp_path: Path) -> None:
    store = _store(tmp_path, {"lib.typ": "#let é = 1\n".encode()})
    file_id = FileId.in_package(SPEC, "/lib.typ")

    source = store.get_source(file_id)

    assert source.text == "#let é = 1\n"
    assert store.get_source(file_id) is source


def test_missing_package_file_raises_not_found(tmp_path: Path) -> None:
    store = _store(tmp_path, {})

    with pytest.raises(SourceNotFoundError, match="missing.typ"):
        store.get_bytes(FileId.in_package(SPEC, "missing.typ"))


def test_detached_file_is_not_found(tmp_path: Path) -> None:
    store = _store(tmp_path, {})

    with pytest.raises(SourceNotFoundError):
        store.get_bytes(FileId(package=None, path="/chapter.typ"))


def test_invalid_utf8_only_fails_as_source(tmp_path: Path) -> None:
    store = _store(tmp_path, {"font.bin": b"\xff\xfe\x00"})
    file_id = FileId.in_package(SPEC, "font.bin")

    assert store.get_bytes(file_id) == b"\xff\xfe\x00"
    with pytest.raises(InvalidUtf8Error):
        store.get_source(file_id)


def test_paths_escaping_the_package_are_rejected(tmp_path: Path) -> None:
    (tmp_path / "secret.typ").write_text("secret", encoding="utf-8")
    store = _store(tmp_path, {})

    with pytest.raises(SourceNotFoundError):
        store.get_bytes(FileId.in_package(SPEC, "../../../../secret.typ"))


def test_dot_segments_inside_the_package_resolve(tmp_path: Path) -> None:
    store = _store(tmp_path, {"lib.typ": b"ok"})
    assert store.get_bytes(FileId.in_package(SPEC, "src/../lib.typ")) == b"ok"


def test_detached_ids_are_distinct() -> None:
    first = FileId.detached_source()
    second = FileId.detached_source()

    assert first != second
    assert first.path == second.path == "/main.typ"
    assert str(FileId.in_package(SPEC, "lib.typ")) == "@preview/demo:0.1.0/lib.typ"


def test_source_line_index_uses_utf8_offsets() -> None:
    source = Source(FileId.detached_source(), "a\né\nc")

    assert source.len_lines == 3
    assert source.len_bytes == 6
    assert source.byte_to_line(0) == 0
    assert source.byte_to_line(2) == 1
    assert source.byte_to_line(5) == 2
    assert source.byte_to_line(99) is None
    assert source.line_to_range(1) == (2, 5)
    assert source.line_to_range(3) is None
    assert source.byte_to_column(4) == 1
    assert source.byte_to_column(3) is None
    assert source.line_text(1) == "é"
