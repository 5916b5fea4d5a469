"""Options shared by every pipeline command.

Each flag falls back to a ``RELPIPE_*`` environment variable; the token only
comes from ``GITHUB_TOKEN`` (or the hidden ``--token``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from relpipe.core.config import DEFAULT_CONFIG_FILE
from relpipe.pipeline.core import DEFAULT_TIMEOUT_SECONDS, CoreOptions
from relpipe.release.client import TOKEN_ENV_VAR

Targets = Annotated[
    list[str] | None,
    typer.Argument(help="Build targets (default: all).", show_default=False),
]
Tag = Annotated[str, typer.Option("--tag", envvar="RELPIPE_TAG", help="Release tag, e.g. v1.2.0.")]
Committish = Annotated[
    str,
    typer.Option(
        "--commitish",
        envvar="RELPIPE_COMMITISH",
        help="Commit or branch the tag points at (service default if empty).",
    ),
]
Dist = Annotated[Path, typer.Option("--dist", envvar="RELPIPE_DIST", help="Root output directory.")]
ConfigFile = Annotated[
    Path, typer.Option("--config", envvar="RELPIPE_CONFIG", help="Project configuration file.")
]
Timeout = Annotated[
    float,
    typer.Option("--timeout", envvar="RELPIPE_TIMEOUT", help="Budget for the whole run, in seconds."),
]
DryRun = Annotated[
    bool,
    typer.Option("--try", envvar="RELPIPE_TRY", help="Dry run: publish through a fake client, no token needed."),
]
Quiet = Annotated[bool, typer.Option("--quiet", envvar="RELPIPE_QUIET", help="Log only warnings and errors, plus the elapsed time.")]
LogFormat = Annotated[
    str, typer.Option("--log-format", envvar="RELPIPE_LOG_FORMAT", help="Log format: plain or json.")
]
Token = Annotated[str, typer.Option("--token", envvar=TOKEN_ENV_VAR, hidden=True)]
TestMode = Annotated[bool, typer.Option("--test-mode", envvar="RELPIPE_TEST_MODE", hidden=True)]

DEFAULT_DIST = Path("dist")
DEFAULT_CONFIG = Path(DEFAULT_CONFIG_FILE)


def core_options(
    *,
    tag: str,
    committish: str,
    dist: Path,
    config: Path,
    timeout: float,
    dry_run: bool,
    quiet: bool,
    log_format: str,
    token: str,
    test_mode: bool,
) -> CoreOptions:
    return CoreOptions(
        tag=tag,
        committish=committish,
        dist_dir=dist,
        config_file=config,
        timeout=timeout,
        dry_run=dry_run,
        quiet=quiet,
        log_format=log_format,
        token=token,
        test_mode=test_mode,
    )


__all__ = [
    "Committish",
    "ConfigFile",
    "DEFAULT_CONFIG",
    "DEFAULT_DIST",
    "DEFAULT_TIMEOUT_SECONDS",
    "Dist",
    "DryRun",
    "LogFormat",
    "Quiet",
    "Tag",
    "Targets",
    "TestMode",
    "Timeout",
    "Token",
    "core_options",
]
