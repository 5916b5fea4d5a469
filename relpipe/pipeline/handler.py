from __future__ import annotations

from enum import Enum
from typing import Protocol

from relpipe.core.errors import PipelineError
from relpipe.core.result import Result
from relpipe.core.runctx import RunContext

__all__ = ["CommandHandler", "HandlerState"]


class HandlerState(Enum):
    """Lifecycle of one handler within one pipeline run."""

    CREATED = "created"
    INITIALIZED = "initialized"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FAILED_INIT = "failed_init"


class CommandHandler(Protocol):
    """A pipeline phase.

    ``init`` is cheap and local: it validates configuration and acquires what
    the phase will need, with no side effects. ``exec`` does the work.
    """

    name: str

    def init(self) -> Result[None, PipelineError]: ...

    def exec(self, ctx: RunContext, args: list[str]) -> Result[None, PipelineError]: ...
