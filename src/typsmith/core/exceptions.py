"""Custom exception hierarchy for the Typst rendering pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .diagnostics import Diagnostic


class TypsmithError(RuntimeError):
    """Base exception for typsmith failures."""


class ConfigError(TypsmithError):
    """Raised when the preprocessor configuration cannot be validated."""


class PackageError(TypsmithError):
    """Base exception for Typst package resolution failures."""


class NetworkFailedError(PackageError):
    """Raised when a package archive cannot be downloaded."""


class MalformedArchiveError(PackageError):
    """Raised when a downloaded package archive cannot be unpacked."""


class FileError(TypsmithError):
    """Base exception for virtual file access failures."""


class SourceNotFoundError(FileError):
    """Raised when a file identifier cannot be mapped to any content."""

    def __init__(self, path: str) -> None:
        super().__init__(f"file not found: {path}")
        self.path = path


class InvalidUtf8Error(FileError):
    """Raised when a file must be decoded as text but is not valid UTF-8."""

    def __init__(self, path: str) -> None:
        super().__init__(f"file is not valid utf-8: {path}")
        self.path = path


class FileAccessError(FileError):
    """Raised when a resolved package file cannot be read from disk."""


class CompilationFailedError(TypsmithError):
    """Raised when the engine reports errors instead of a document."""

    def __init__(self, message: str, diagnostics: Sequence[Diagnostic] = ()) -> None:
        super().__init__(message)
        self.diagnostics = tuple(diagnostics)


class ReportFailedError(TypsmithError):
    """Raised when a diagnostic location cannot be resolved."""


class DocumentRenderError(TypsmithError):
    """Raised when a fragment of a document fails to render."""

    def __init__(self, document: str, message: str) -> None:
        super().__init__(f"Failed to render math in chapter '{document}': {message}")
        self.document = document


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "CompilationFailedError",
    "ConfigError",
    "DocumentRenderError",
    "FileAccessError",
    "FileError",
    "InvalidUtf8Error",
    "MalformedArchiveError",
    "NetworkFailedError",
    "PackageError",
    "ReportFailedError",
    "SourceNotFoundError",
    "TypsmithError",
    "exception_hint",
    "exception_messages",
]
