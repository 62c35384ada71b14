"""Primary public API for typsmith."""

from __future__ import annotations

from typsmith.adapters.mdbook import PreprocessorContext, TypstProcessor
from typsmith.core.config import TypstMathConfig, load_config
from typsmith.core.context import CompilationContext, Compiler, Library, SourceOrigin
from typsmith.core.diagnostics import Diagnostic, DiagnosticEmitter, Severity, Span
from typsmith.core.engine import CompileOutcome, Engine, RenderedDocument
from typsmith.core.exceptions import (
    CompilationFailedError,
    DocumentRenderError,
    FileError,
    PackageError,
    TypsmithError,
)
from typsmith.core.files import FileId, FileStore, Source
from typsmith.core.packages import PackageCache, PackageSpec
from typsmith.core.rewriter import DocumentRewriter, Fragment, FragmentKind, RewriteOptions
from typsmith.version import get_version


__version__ = get_version()

__all__ = [
    "CompilationContext",
    "CompilationFailedError",
    "CompileOutcome",
    "Compiler",
    "Diagnostic",
    "DiagnosticEmitter",
    "DocumentRenderError",
    "DocumentRewriter",
    "Engine",
    "FileError",
    "FileId",
    "FileStore",
    "Fragment",
    "FragmentKind",
    "Library",
    "PackageCache",
    "PackageError",
    "PackageSpec",
    "PreprocessorContext",
    "RenderedDocument",
    "RewriteOptions",
    "Severity",
    "Source",
    "SourceOrigin",
    "Span",
    "TypstMathConfig",
    "TypstProcessor",
    "TypsmithError",
    "__version__",
    "get_version",
    "load_config",
]
