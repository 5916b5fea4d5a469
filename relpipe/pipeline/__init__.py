from __future__ import annotations

from relpipe.pipeline.archive import Archivist, archive_name, archive_path
from relpipe.pipeline.build import Builder, select_builds
from relpipe.pipeline.core import DEFAULT_TIMEOUT_SECONDS, Core, CoreOptions
from relpipe.pipeline.handler import CommandHandler, HandlerState
from relpipe.pipeline.phases import PHASES, Phase, all_handlers, handlers_for
from relpipe.pipeline.release import Releaser, to_pipeline_error
from relpipe.pipeline.runner import Pipeline

__all__ = [
    "Archivist",
    "Builder",
    "CommandHandler",
    "Core",
    "CoreOptions",
    "DEFAULT_TIMEOUT_SECONDS",
    "HandlerState",
    "PHASES",
    "Phase",
    "Pipeline",
    "Releaser",
    "all_handlers",
    "archive_name",
    "archive_path",
    "handlers_for",
    "select_builds",
    "to_pipeline_error",
]
