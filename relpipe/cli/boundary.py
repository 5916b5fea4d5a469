"""Top-level run: the one place where failures of any shape become results."""

from __future__ import annotations

import time
import traceback
from collections.abc import Callable
from typing import TextIO

from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.output.logging import format_duration, get_logger, setup_logging
from relpipe.pipeline.core import Core, CoreOptions
from relpipe.pipeline.handler import CommandHandler
from relpipe.pipeline.runner import Pipeline
from relpipe.release.http import HttpTransport

# Logger of the elapsed-time line, kept at info under --quiet.
SUMMARY_LOGGER = "relpipe.summary"

__all__ = ["HandlerFactory", "run_pipeline"]

type HandlerFactory = Callable[[Core], list[CommandHandler]]


def _timeout_error(options: CoreOptions, error: PipelineError) -> PipelineError:
    if error.kind == "cancelled":
        return PipelineError(kind="cancelled", message="command was cancelled")
    return PipelineError(
        kind="timeout",
        message=(
            f"command timed out after {format_duration(options.timeout)}; "
            "increase --timeout if needed"
        ),
        hint=error.message,
    )


def run_pipeline(
    options: CoreOptions,
    select_handlers: HandlerFactory,
    args: list[str],
    *,
    transport: HttpTransport | None = None,
    ctx: RunContext | None = None,
    log_stream: TextIO | None = None,
) -> Result[None, PipelineError]:
    """Run the selected handlers and report the outcome as a single result.

    Handler errors come back unchanged, except that timeout and cancellation
    errors are reworded for the user. Any exception escaping the pipeline
    becomes an ``internal`` error carrying the formatted stack trace. The core
    is always closed and the elapsed time always logged.
    """
    start = time.monotonic()
    setup_logging(
        "WARNING" if options.quiet else "INFO",
        options.log_format,
        stream=log_stream,
        always_info=(SUMMARY_LOGGER,),
    )
    logger = get_logger(SUMMARY_LOGGER)

    ctx = ctx or RunContext.with_timeout(options.timeout)
    core: Core | None = None
    result: Result[None, PipelineError]
    try:
        core = Core(options, transport=transport)
        result = core.init()
        if isinstance(result, Ok):
            result = Pipeline(select_handlers(core)).run(ctx, args)
    except KeyboardInterrupt:
        ctx.cancel()
        result = Err(ctx.error())
    except Exception as e:
        result = Err(
            PipelineError(
                kind="internal",
                message=f"unexpected error: {e!r}",
                hint="this is a bug; please report it with the trace below",
                trace=traceback.format_exc(),
            )
        )
    finally:
        if core is not None:
            core.close()
        logger.info("Total in %s", format_duration(time.monotonic() - start))

    if isinstance(result, Err) and result.error.is_timeout:
        return Err(_timeout_error(options, result.error))
    return result
