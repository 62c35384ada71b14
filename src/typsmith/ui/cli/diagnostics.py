"""Diagnostic emitter rendering pipeline output on the CLI console.

Engine diagnostics arrive as multi-line, source-located blocks whose first
line already carries the severity. They are printed as-is under a ``typst``
label instead of going through the generic ``warning:``/``error:`` prefixes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from typsmith.core.diagnostics import DIAGNOSTIC_PREFIX, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


_BLOCK_STYLES = {"warning": "yellow", "error": "red"}


class CliEmitter:
    """Emit diagnostics using the rich-enabled CLI helpers."""

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        self._state = state or get_cli_state()
        if debug_enabled is None:
            debug_enabled = self._state.show_tracebacks
        self.debug_enabled = bool(debug_enabled)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if message.startswith(DIAGNOSTIC_PREFIX):
            self._print_block("warning", message[len(DIAGNOSTIC_PREFIX) :])
            return
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if message.startswith(DIAGNOSTIC_PREFIX):
            self._print_block("error", message[len(DIAGNOSTIC_PREFIX) :])
            return
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        data = dict(payload)
        self._state.record_event(name, data)
        message = format_event_message(name, data)
        if message and self._state.verbosity >= 1:
            render_message("info", message)

    def _print_block(self, level: str, block: str) -> None:
        from rich.text import Text

        style = _BLOCK_STYLES[level]
        text = Text.assemble(("typst ", f"bold {style}"), (block, style))
        # Wrapping would break the caret alignment under the source line.
        self._state.err_console.print(text, soft_wrap=True)


__all__ = ["CliEmitter"]
