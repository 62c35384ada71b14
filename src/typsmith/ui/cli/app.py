"""Typer application wiring for the typsmith CLI."""

from __future__ import annotations

import typer

from ._options import DebugOption, VerbosityOption
from .commands import preprocess, render, supports
from .state import configure_logging, debug_enabled, emit_error, get_cli_state, set_cli_state


app = typer.Typer(
    help="mdBook preprocessor rendering Typst math and code blocks to SVG.",
    context_settings={"help_option_names": ["--help"]},
    invoke_without_command=True,
    no_args_is_help=False,
)


@app.callback()
def _entry(
    ctx: typer.Context,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    """Without a command, preprocess the book JSON read from stdin."""
    state = set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)
    configure_logging(state)
    if ctx.invoked_subcommand is None:
        preprocess()


app.command("supports")(supports)
app.command("render")(render)


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - last-resort reporting
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
