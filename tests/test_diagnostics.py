from __future__ import annotations

import logging
from pathlib import Path

import pytest

from typsmith.core.context import Compiler, SourceOrigin
from typsmith.core.diagnostics import (
    Diagnostic,
    DiagnosticReporter,
    LoggingEmitter,
    NullEmitter,
    Span,
    format_event_message,
    render_diagnostic,
)
from typsmith.core.engine import CompileOutcome
from typsmith.core.exceptions import TypsmithError, exception_hint, exception_messages
from typsmith.core.files import FileId
from typsmith.core.packages import PackageCache, PackageSpec
from typsmith.ui.cli.diagnostics import CliEmitter
from typsmith.ui.cli.state import set_cli_state


class _UnusedEngine:
    def compile(self, context):
        return CompileOutcome(None)


class RecordingEmitter(NullEmitter):
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def warning(self, message, exc=None) -> None:
        self.messages.append(("warning", message))

    def error(self, message, exc=None) -> None:
        self.messages.append(("error", message))


def _context(tmp_path: Path, text: str, origin: SourceOrigin | None = None):
    compiler = Compiler(_UnusedEngine(), packages=PackageCache(tmp_path))
    return compiler.wrap_source(text, origin=origin)


def test_render_unlocated_diagnostic_with_hints() -> None:
    diagnostic = Diagnostic.error("unknown variable: x", hints=["did you mean y?"])
    assert render_diagnostic(diagnostic, None) == (
        "error: unknown variable: x\n  = hint: did you mean y?"
    )


def test_located_diagnostic_points_at_the_document_line(tmp_path: Path) -> None:
    text = "#set page()\n$a + foo$"
    context = _context(tmp_path, text, SourceOrigin("chapter.md", line=4, preamble_lines=1))
    start = len("#set page()\n$a + ")
    span = Span(context.main(), start, start + 3)
    reporter = DiagnosticReporter(NullEmitter())

    rendered = reporter.format(context, Diagnostic.error("unknown variable: foo", span=span))

    lines = rendered.splitlines()
    assert lines[0] == "error: unknown variable: foo"
    assert lines[1].endswith("┌─ chapter.md:5:6")
    assert lines[3] == "5 │ $a + foo$"
    assert lines[4].endswith("│      ^^^")


def test_preamble_span_is_labelled(tmp_path: Path) -> None:
    context = _context(tmp_path, "#bad()\n$x$", SourceOrigin("chapter.md", line=0, preamble_lines=1))
    span = Span(context.main(), 1, 4)

    location = DiagnosticReporter(NullEmitter()).locate(context, span)

    assert location.name == "chapter.md (preamble)"
    assert location.line == 1
    assert location.column == 2


def test_unresolvable_span_degrades_to_plain_message(tmp_path: Path) -> None:
    spec = PackageSpec("preview", "demo", "0.1.0")
    (tmp_path / spec.subdir).mkdir(parents=True)
    context = _context(tmp_path, "$x$")
    span = Span(FileId.in_package(spec, "missing.typ"), 0, 1)

    rendered = DiagnosticReporter(NullEmitter()).format(
        context, Diagnostic.error("boom", span=span)
    )

    assert rendered == "error: boom"


def test_out_of_range_span_degrades_to_plain_message(tmp_path: Path) -> None:
    context = _context(tmp_path, "$x$")
    span = Span(context.main(), 40, 41)

    rendered = DiagnosticReporter(NullEmitter()).format(context, Diagnostic.warning("odd", span=span))

    assert rendered == "warning: odd"


def test_report_emits_warnings_before_errors(tmp_path: Path) -> None:
    emitter = RecordingEmitter()
    reporter = DiagnosticReporter(emitter)

    rendered = reporter.report(
        _context(tmp_path, "$x$"),
        warnings=[Diagnostic.warning("first")],
        errors=[Diagnostic.error("second")],
    )

    assert rendered == ["warning: first", "error: second"]
    assert emitter.messages == [
        ("warning", "Typst: warning: first"),
        ("error", "Typst: error: second"),
    ]


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.INFO, logger="typsmith"):
        emitter.error("boom")
        emitter.event("package_fetch", {"package": "@preview/demo:0.1.0"})
    messages = [record.getMessage() for record in caplog.records]
    assert "boom" in messages
    assert "Downloading package @preview/demo:0.1.0" in messages
    assert emitter.debug_enabled is True


def test_format_event_message() -> None:
    assert format_event_message("chapter_rendered", {"chapter": "Intro", "fragments": 2}) == (
        "Rendered 2 Typst fragment(s) in 'Intro'"
    )
    assert format_event_message("chapter_rendered", {"chapter": "Intro", "fragments": 0}) is None
    assert format_event_message("unknown", {}) is None


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    try:
        emitter = CliEmitter(state=state)
        emitter.warning("Heads up", exc=None)
        emitter.error("Boom", exc=None)
        emitter.event("package_cached", {"package": "@preview/demo:0.1.0", "path": "/tmp/x"})
    finally:
        set_cli_state(verbosity=0, debug=False)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Heads up" in captured.err
    assert "Boom" in captured.err
    assert "Cached package" in captured.err
    assert state.consume_events("package_cached") == [
        {"package": "@preview/demo:0.1.0", "path": "/tmp/x"}
    ]


def test_exception_messages_follow_the_cause_chain() -> None:
    try:
        try:
            raise OSError("disk full")
        except OSError as exc:
            raise TypsmithError("render failed") from exc
    except TypsmithError as exc:
        assert exception_messages(exc) == ["render failed", "disk full"]
        assert exception_hint(exc) == "disk full"


def test_cli_emitter_prints_typst_blocks_without_duplicate_prefix(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    emitter = RecordingEmitter()
    text = "#set page()\n$a + foo$"
    context = _context(tmp_path, text, SourceOrigin("chapter.md", line=0, preamble_lines=1))
    start = len("#set page()\n$a + ")
    span = Span(context.main(), start, start + 3)
    diagnostic = Diagnostic.error("unknown variable: foo", span=span)
    DiagnosticReporter(emitter).report(context, errors=[diagnostic])
    [(_, message)] = emitter.messages

    state = set_cli_state(verbosity=0, debug=False)
    CliEmitter(state=state).error(message)

    err = capsys.readouterr().err
    assert err.startswith("typst error: unknown variable: foo\n")
    assert "error: error:" not in err
    assert "chapter.md:1:6" in err
    assert "1 │ $a + foo$" in err
