"""Release phase: create the release and upload every archive."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from relpipe.core.errors import ErrorKind, PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.pipeline.archive import archive_path, select_archives
from relpipe.pipeline.core import Core
from relpipe.release.client import (
    ClientOptions,
    FakeClient,
    ReleaseClient,
    new_client,
    upload_asset_with_retries,
)
from relpipe.release.errors import TemporaryError, UploadError
from relpipe.release.retry import DEFAULT_POLICY, RetryPolicy

_KIND_MAP: dict[str, ErrorKind] = {
    "config": "config",
    "io": "io",
    "missing_file": "io",
    "timeout": "timeout",
    "cancelled": "cancelled",
}


def to_pipeline_error(error: UploadError | PipelineError) -> PipelineError:
    if isinstance(error, PipelineError):
        return error
    if isinstance(error, TemporaryError):
        cause = error.cause
        return PipelineError(
            kind="release",
            message=f"{cause.message} (giving up after retries)",
            hint=cause.hint,
        )
    return PipelineError(kind=_KIND_MAP.get(error.kind, "release"), message=error.message, hint=error.hint)


class Releaser:
    name = "release"

    def __init__(self, core: Core, *, policy: RetryPolicy = DEFAULT_POLICY) -> None:
        self.core = core
        self.policy = policy
        self.client: ReleaseClient | None = None
        self._logger: Any = None

    def init(self) -> Result[None, PipelineError]:
        settings = self.core.config.release
        missing = [
            field
            for field, value in (
                ("repository_owner", settings.repository_owner),
                ("repository", settings.repository),
            )
            if not value
        ]
        if missing:
            return Err(
                PipelineError(
                    kind="config",
                    message=f"[release] is missing {', '.join(missing)}",
                    hint=str(self.core.options.config_file),
                )
            )

        notes = settings.release_notes_file
        if notes is not None and not notes.is_file():
            return Err(
                PipelineError(
                    kind="config",
                    message=f"release notes file not found: {notes}",
                    hint="fix release_notes_file in [release]",
                )
            )

        options = ClientOptions(
            token=self.core.options.token,
            dry_run=self.core.options.dry_run,
            test_mode=self.core.options.test_mode,
        )
        client = new_client(settings.type, options, transport=self.core.transport)
        if isinstance(client, Err):
            return Err(to_pipeline_error(client.error))

        self.client = client.value
        self._logger = self.core.logger.bind(
            phase=self.name,
            repo=f"{settings.repository_owner}/{settings.repository}",
            dry_run=isinstance(self.client, FakeClient),
        )
        return Ok(None)

    def _assets(self, builds: list[str]) -> Result[list[Path], PipelineError]:
        """Archive files of the selected builds; each must already exist."""
        selected = select_archives(self.core.config, builds)
        if isinstance(selected, Err):
            return selected
        paths = [archive_path(self.core, a) for a in selected.value]
        if not paths:
            return Err(PipelineError(kind="release", message="no archives to upload"))
        missing = [p for p in paths if not p.is_file()]
        if missing:
            return Err(
                PipelineError(
                    kind="release",
                    message=f"archive not found: {missing[0]}",
                    hint="run the archive phase first",
                )
            )
        return Ok(paths)

    def exec(self, ctx: RunContext, args: list[str]) -> Result[None, PipelineError]:
        if self.client is None:
            raise RuntimeError("Releaser.exec() called before a successful init()")

        assets = self._assets(args)
        if isinstance(assets, Err):
            return assets

        settings = self.core.config.release
        created = self.client.create_release(
            self.core.options.tag,
            self.core.options.committish,
            settings,
            ctx=ctx,
        )
        if isinstance(created, Err):
            return Err(to_pipeline_error(created.error))
        release_id = created.value
        self._logger.info("release_created", release_id=release_id)

        for path in assets.value:

            def on_retry(attempt: int, error: UploadError, delay: float, asset: str = path.name) -> None:
                self._logger.warning(
                    "upload_retry",
                    asset=asset,
                    attempt=attempt,
                    delay=round(delay, 3),
                    error=error.message,
                )

            uploaded = upload_asset_with_retries(
                self.client,
                settings,
                release_id,
                lambda p=path: p.open("rb"),
                ctx=ctx,
                policy=self.policy,
                on_retry=on_retry,
            )
            if isinstance(uploaded, Err):
                return Err(to_pipeline_error(uploaded.error))
            self._logger.info("asset_uploaded", asset=path.name)

        return Ok(None)
