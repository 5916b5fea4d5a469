"""Handler lists for each CLI command."""

from __future__ import annotations

from typing import Literal

from relpipe.pipeline.archive import Archivist
from relpipe.pipeline.build import Builder
from relpipe.pipeline.core import Core
from relpipe.pipeline.handler import CommandHandler
from relpipe.pipeline.release import Releaser

Phase = Literal["build", "archive", "release", "all"]

PHASES: tuple[Phase, ...] = ("build", "archive", "release", "all")


def handlers_for(phase: Phase, core: Core) -> list[CommandHandler]:
    """Fresh handlers for one run of ``phase``, in execution order."""
    match phase:
        case "build":
            return [Builder(core)]
        case "archive":
            return [Archivist(core)]
        case "release":
            return [Releaser(core)]
        case "all":
            return [Builder(core), Archivist(core), Releaser(core)]
    raise ValueError(f"unknown phase: {phase!r}")


def all_handlers(core: Core) -> list[CommandHandler]:
    return handlers_for("all", core)
