"""Sequential two-step orchestration of phase handlers."""

from __future__ import annotations

from collections.abc import Sequence

from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.pipeline.handler import CommandHandler, HandlerState

__all__ = ["Pipeline"]


class Pipeline:
    """Runs handlers in declared order: all ``init`` first, then all ``exec``.

    Any init failure stops the run before a single handler executes, so a
    misconfigured late phase is reported before earlier phases write files or
    talk to the network. An exec failure stops the remaining handlers; work
    already done is not undone. The failing handler's error is returned as is.
    """

    def __init__(self, handlers: Sequence[CommandHandler]) -> None:
        self._handlers = list(handlers)
        self._states = [HandlerState.CREATED] * len(self._handlers)

    @property
    def states(self) -> list[HandlerState]:
        return list(self._states)

    def run(self, ctx: RunContext, args: list[str]) -> Result[None, PipelineError]:
        for i, handler in enumerate(self._handlers):
            if ctx.done:
                return Err(ctx.error())
            result = handler.init()
            if isinstance(result, Err):
                self._states[i] = HandlerState.FAILED_INIT
                return result
            self._states[i] = HandlerState.INITIALIZED

        for i, handler in enumerate(self._handlers):
            if ctx.done:
                return Err(ctx.error())
            result = handler.exec(ctx, args)
            if isinstance(result, Err):
                self._states[i] = HandlerState.FAILED
                return result
            self._states[i] = HandlerState.SUCCEEDED

        return Ok(None)
