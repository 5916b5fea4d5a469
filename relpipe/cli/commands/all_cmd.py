"""All command - build, archive and release in one run."""

from __future__ import annotations

from relpipe.cli.commands._helpers import run_phase
from relpipe.cli.commands._options import (
    DEFAULT_CONFIG,
    DEFAULT_DIST,
    DEFAULT_TIMEOUT_SECONDS,
    Committish,
    ConfigFile,
    Dist,
    DryRun,
    LogFormat,
    Quiet,
    Tag,
    Targets,
    TestMode,
    Timeout,
    Token,
    core_options,
)


def all_phases(
    tag: Tag,
    targets: Targets = None,
    committish: Committish = "",
    dist: Dist = DEFAULT_DIST,
    config: ConfigFile = DEFAULT_CONFIG,
    timeout: Timeout = DEFAULT_TIMEOUT_SECONDS,
    dry_run: DryRun = False,
    quiet: Quiet = False,
    log_format: LogFormat = "plain",
    token: Token = "",
    test_mode: TestMode = False,
) -> None:
    """Build, archive and release in one run.

    Every phase is validated before the first one starts.
    """
    options = core_options(
        tag=tag,
        committish=committish,
        dist=dist,
        config=config,
        timeout=timeout,
        dry_run=dry_run,
        quiet=quiet,
        log_format=log_format,
        token=token,
        test_mode=test_mode,
    )
    run_phase("all", options, targets)
