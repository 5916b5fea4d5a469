"""Archive phase: package build outputs into zip files.

Design goals:

- Deterministic output names (stable release asset names)
- Deterministic member order
- Tolerate tool outputs stamped with mtime=0
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from zipfile import ZIP_DEFLATED, ZipFile

from relpipe.core.config import ArchiveSettings, Config
from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.pipeline.build import select_builds
from relpipe.pipeline.core import Core


def collect_dir(base_dir: Path, *, arc_prefix: str) -> list[tuple[Path, str]]:
    """List files under ``base_dir`` as (path, archive name) pairs, sorted."""
    if not base_dir.is_dir():
        return []

    out: list[tuple[Path, str]] = []
    for p in sorted(base_dir.rglob("*")):
        if p.is_dir():
            continue
        rel = p.relative_to(base_dir).as_posix()
        out.append((p, f"{arc_prefix}/{rel}"))
    return out


def zip_files(zip_path: Path, *, files: list[tuple[Path, str]]) -> None:
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    # ZIP cannot represent timestamps before 1980; some toolchains emit mtime=0.
    with ZipFile(zip_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
        for src, arc in files:
            zf.write(src, arcname=arc)


def archive_name(core: Core, archive: ArchiveSettings) -> str:
    """Archive base name; also the release asset name without ".zip"."""
    if archive.name:
        return archive.name
    return f"{core.config.project}_{core.options.tag}_{archive.build}"


def archive_path(core: Core, archive: ArchiveSettings) -> Path:
    return core.archives_dir / f"{archive_name(core, archive)}.zip"


def select_archives(config: Config, builds: list[str]) -> Result[list[ArchiveSettings], PipelineError]:
    """Archives of the builds named on the command line (all if none named)."""
    selected = select_builds(config.builds, builds)
    if isinstance(selected, Err):
        return selected
    names = {b.name for b in selected.value}
    return Ok([a for a in config.archives if a.build in names])


class Archivist:
    name = "archive"

    def __init__(self, core: Core) -> None:
        self.core = core
        self._logger: Any = None

    def init(self) -> Result[None, PipelineError]:
        archives = self.core.config.archives
        if not archives:
            return Err(
                PipelineError(
                    kind="config",
                    message="no archives configured",
                    hint=f"add an [[archives]] table to {self.core.options.config_file}",
                )
            )

        names = [archive_name(self.core, a) for a in archives]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            return Err(
                PipelineError(kind="config", message=f"duplicate archive names: {', '.join(dupes)}")
            )

        self._logger = self.core.logger.bind(phase=self.name)
        return Ok(None)

    def exec(self, ctx: RunContext, args: list[str]) -> Result[None, PipelineError]:
        archives = select_archives(self.core.config, args)
        if isinstance(archives, Err):
            return archives

        for archive in archives.value:
            if ctx.done:
                return Err(ctx.error())
            result = self._archive_one(archive)
            if isinstance(result, Err):
                return result
        return Ok(None)

    def _archive_one(self, archive: ArchiveSettings) -> Result[None, PipelineError]:
        src = self.core.build_dir(archive.build)
        name = archive_name(self.core, archive)
        files = collect_dir(src, arc_prefix=name)
        if not files:
            return Err(
                PipelineError(
                    kind="archive",
                    message=f"build output missing or empty: {src}",
                    hint="run the build phase first",
                )
            )

        zip_path = archive_path(self.core, archive)
        try:
            zip_files(zip_path, files=files)
        except OSError as e:
            return Err(PipelineError(kind="io", message=f"cannot write {zip_path}: {e}"))

        self._logger.info("archive_created", archive=zip_path.name, files=len(files))
        return Ok(None)
