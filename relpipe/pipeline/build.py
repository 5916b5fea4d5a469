"""Build phase: run each configured build command."""

from __future__ import annotations

import os
from typing import Any

from relpipe.core.config import BuildSettings
from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.pipeline.core import Core
from relpipe.platform.process import run as run_process

OUT_PLACEHOLDER = "{out}"


def _tail(text: str, lines: int = 20) -> str | None:
    kept = text.strip().splitlines()[-lines:]
    return "\n".join(kept) or None


def select_builds(
    builds: tuple[BuildSettings, ...], names: list[str]
) -> Result[list[BuildSettings], PipelineError]:
    """Pick the builds named on the command line (all of them if none named)."""
    if not names:
        return Ok(list(builds))
    by_name = {b.name: b for b in builds}
    unknown = [n for n in names if n not in by_name]
    if unknown:
        return Err(
            PipelineError(
                kind="config",
                message=f"unknown build target(s): {', '.join(unknown)}",
                hint=f"available: {', '.join(by_name)}",
            )
        )
    return Ok([by_name[n] for n in names])


class Builder:
    name = "build"

    def __init__(self, core: Core) -> None:
        self.core = core
        self._logger: Any = None

    def init(self) -> Result[None, PipelineError]:
        if not self.core.config.builds:
            return Err(
                PipelineError(
                    kind="config",
                    message="no builds configured",
                    hint=f"add a [[builds]] table to {self.core.options.config_file}",
                )
            )
        self._logger = self.core.logger.bind(phase=self.name)
        return Ok(None)

    def exec(self, ctx: RunContext, args: list[str]) -> Result[None, PipelineError]:
        selected = select_builds(self.core.config.builds, args)
        if isinstance(selected, Err):
            return selected

        for build in selected.value:
            if ctx.done:
                return Err(ctx.error())
            result = self._run_one(ctx, build)
            if isinstance(result, Err):
                return result
        return Ok(None)

    def _run_one(self, ctx: RunContext, build: BuildSettings) -> Result[None, PipelineError]:
        out_dir = self.core.build_dir(build.name).resolve()
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(PipelineError(kind="io", message=f"cannot create {out_dir}: {e}"))

        cmd = [part.replace(OUT_PLACEHOLDER, str(out_dir)) for part in build.command]
        env = {
            **os.environ,
            **build.env,
            "RELPIPE_TAG": self.core.options.tag,
            "RELPIPE_OUT": str(out_dir),
        }

        self._logger.info("build_started", target=build.name, out=str(out_dir))
        result = run_process(cmd, cwd=self.core.config.root, env=env, timeout=ctx.remaining())
        if isinstance(result, Err):
            error = result.error
            if error.timed_out and ctx.done:
                return Err(ctx.error())
            return Err(
                PipelineError(
                    kind="build",
                    message=f"build {build.name}: {error}",
                    hint=_tail(error.stderr) or _tail(error.stdout),
                )
            )

        self._logger.info("build_done", target=build.name)
        return Ok(None)
