"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from relpipe.cli.boundary import run_pipeline
from relpipe.core.errors import ErrorCode, PipelineError, exit_code_for
from relpipe.core.result import Err
from relpipe.output.console import ConsoleProtocol, RichConsole, Style
from relpipe.output.logging import LOG_FORMATS
from relpipe.pipeline.core import Core, CoreOptions
from relpipe.pipeline.handler import CommandHandler
from relpipe.pipeline.phases import Phase, handlers_for


def make_console() -> ConsoleProtocol:
    return RichConsole()


def report_error(console: ConsoleProtocol, error: PipelineError) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    if error.trace:
        console.print(error.trace, Style.DIM)


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def run_phase(phase: Phase, options: CoreOptions, targets: list[str] | None = None) -> None:
    """Run one CLI command and exit with the code matching its outcome."""
    console = make_console()
    if options.log_format not in LOG_FORMATS:
        console.error(
            f"invalid --log-format {options.log_format!r} (expected one of: {', '.join(LOG_FORMATS)})"
        )
        exit_with_code(int(ErrorCode.USER_ERROR))

    def select(core: Core) -> list[CommandHandler]:
        return handlers_for(phase, core)

    result = run_pipeline(options, select, list(targets or []))
    if isinstance(result, Err):
        report_error(console, result.error)
        exit_with_code(int(exit_code_for(result.error.kind)))
