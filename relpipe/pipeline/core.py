"""State shared by all phase handlers of one invocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from relpipe.core.config import DEFAULT_CONFIG_FILE, Config, load_config
from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.output.logging import get_logger
from relpipe.release.http import HttpTransport

__all__ = ["Core", "CoreOptions", "DEFAULT_TIMEOUT_SECONDS"]

DEFAULT_TIMEOUT_SECONDS = 55 * 60.0


@dataclass(frozen=True, slots=True)
class CoreOptions:
    """Options collected by the CLI (flags, with environment fallbacks).

    Attributes:
        tag: Release tag, e.g. v1.2.0.
        committish: Commit or branch the tag points at (service default if empty).
        dist_dir: Root output directory.
        config_file: Project configuration file.
        timeout: Budget for the whole run, in seconds.
        dry_run: Publish through the fake client; no network, no token.
        quiet: Only log warnings and errors.
        log_format: "plain" or "json".
        token: Release service access token.
        test_mode: Accept the fake token (integration tests only).
    """

    tag: str
    committish: str = ""
    dist_dir: Path = Path("dist")
    config_file: Path = Path(DEFAULT_CONFIG_FILE)
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    dry_run: bool = False
    quiet: bool = False
    log_format: str = "plain"
    token: str = ""
    test_mode: bool = False


class Core:
    def __init__(self, options: CoreOptions, *, transport: HttpTransport | None = None) -> None:
        self.options = options
        self.transport = transport
        self._config: Config | None = None
        self.logger: Any = get_logger("relpipe").bind(tag=options.tag)

    @property
    def config(self) -> Config:
        if self._config is None:
            raise RuntimeError("Core.init() must succeed before config is used")
        return self._config

    def init(self) -> Result[None, PipelineError]:
        """Validate options and load the project configuration."""
        if not self.options.tag.strip():
            return Err(PipelineError(kind="config", message="missing release tag", hint="pass --tag"))
        if self.options.timeout <= 0:
            return Err(PipelineError(kind="config", message="--timeout must be positive"))

        result = load_config(self.options.config_file)
        if isinstance(result, Err):
            return Err(
                PipelineError(
                    kind="config",
                    message=result.error.message,
                    hint="create it or point --config at it",
                )
            )
        self._config = result.value
        return Ok(None)

    @property
    def project_dir(self) -> Path:
        return self.options.dist_dir / self.config.project / self.options.tag

    def build_dir(self, build: str) -> Path:
        return self.project_dir / "build" / build

    @property
    def archives_dir(self) -> Path:
        return self.project_dir / "archives"

    def close(self) -> None:
        """Flush log output; called once at the end of every run."""
        for handler in logging.getLogger().handlers:
            handler.flush()
