"""Tests for the release phase handler."""

from __future__ import annotations

from pathlib import Path

from relpipe.core.result import Err, Ok
from relpipe.core.runctx import RunContext
from relpipe.pipeline.archive import archive_path
from relpipe.pipeline.core import Core
from relpipe.pipeline.release import Releaser
from relpipe.release.client import FakeClient, GitHubClient
from relpipe.release.http import HttpError, HttpResponse, MockTransport
from relpipe.release.retry import RetryPolicy

from ._project import make_core, write_project

NO_WAIT = RetryPolicy(max_attempts=3, initial_delay=0.0)


def _write_archives(core: Core) -> list[Path]:
    paths = [archive_path(core, a) for a in core.config.archives]
    for p in paths:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(b"PK" + p.name.encode())
    return paths


class TestReleaserInit:
    def test_missing_repository(self, tmp_path: Path) -> None:
        config = write_project(tmp_path, release='[release]\nrepository_owner = "acme"\n')
        core = make_core(tmp_path, config_file=config, dry_run=True)

        result = Releaser(core).init()

        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert "repository" in result.error.message

    def test_missing_notes_file(self, tmp_path: Path) -> None:
        config = write_project(
            tmp_path,
            release='[release]\nrepository_owner = "acme"\nrepository = "hello"\nrelease_notes_file = "NOTES.md"\n',
        )
        core = make_core(tmp_path, config_file=config, dry_run=True)

        result = Releaser(core).init()

        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert "NOTES.md" in result.error.message

    def test_missing_token(self, tmp_path: Path) -> None:
        core = make_core(tmp_path)

        result = Releaser(core).init()

        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert "GITHUB_TOKEN" in result.error.message

    def test_dry_run_selects_fake_client(self, tmp_path: Path) -> None:
        releaser = Releaser(make_core(tmp_path, dry_run=True))
        assert releaser.init() == Ok(None)
        assert isinstance(releaser.client, FakeClient)

    def test_token_selects_github_client(self, tmp_path: Path) -> None:
        releaser = Releaser(make_core(tmp_path, token="ghp_x"))
        assert releaser.init() == Ok(None)
        assert isinstance(releaser.client, GitHubClient)


class TestReleaserExec:
    def test_dry_run_uploads_every_archive(self, tmp_path: Path) -> None:
        core = make_core(tmp_path, dry_run=True)
        paths = _write_archives(core)
        releaser = Releaser(core)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert result == Ok(None)
        assert isinstance(releaser.client, FakeClient)
        assert len(releaser.client.created) == 1
        assert releaser.client.uploaded == [p.name for p in paths]

    def test_args_select_archives(self, tmp_path: Path) -> None:
        core = make_core(tmp_path, dry_run=True)
        _write_archives(core)
        releaser = Releaser(core)
        releaser.init()

        result = releaser.exec(RunContext(60.0), ["linux"])

        assert result == Ok(None)
        assert isinstance(releaser.client, FakeClient)
        assert releaser.client.uploaded == ["hello_v1.0.0_linux.zip"]

    def test_unknown_build_argument(self, tmp_path: Path) -> None:
        core = make_core(tmp_path, dry_run=True)
        releaser = Releaser(core)
        releaser.init()

        result = releaser.exec(RunContext(60.0), ["windows"])

        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert isinstance(releaser.client, FakeClient)
        assert releaser.client.created == []

    def test_missing_archive(self, tmp_path: Path) -> None:
        core = make_core(tmp_path, dry_run=True)
        releaser = Releaser(core)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert isinstance(result, Err)
        assert result.error.hint == "run the archive phase first"
        assert isinstance(releaser.client, FakeClient)
        assert releaser.client.created == []

    def test_no_archives_configured(self, tmp_path: Path) -> None:
        core = make_core(tmp_path, config_file=write_project(tmp_path, archives=False), dry_run=True)
        releaser = Releaser(core)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert isinstance(result, Err)
        assert result.error.message == "no archives to upload"

    def test_github_retries_transient_upload_failures(self, tmp_path: Path) -> None:
        transport = MockTransport(
            HttpResponse(status=201, body=b'{"id": 77}'),
            HttpError(url="u", status=503, message="Service Unavailable"),
            HttpResponse(status=201),
            HttpResponse(status=201),
        )
        core = make_core(tmp_path, token="ghp_x", transport=transport)
        _write_archives(core)
        releaser = Releaser(core, policy=NO_WAIT)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert result == Ok(None)
        urls = [c.url for c in transport.calls]
        assert urls[0].endswith("/repos/acme/hello/releases")
        assert urls[1] == urls[2]
        assert urls[1].endswith("/releases/77/assets?name=hello_v1.0.0_linux.zip")
        assert urls[3].endswith("/releases/77/assets?name=hello_v1.0.0_darwin.zip")

    def test_unexpected_create_status_is_fatal(self, tmp_path: Path) -> None:
        transport = MockTransport(HttpResponse(status=200, body=b'{"id": 1}'))
        core = make_core(tmp_path, token="ghp_x", transport=transport)
        _write_archives(core)
        releaser = Releaser(core, policy=NO_WAIT)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert isinstance(result, Err)
        assert result.error.kind == "release"
        assert result.error.message == "github: unexpected status code: 200"
        assert len(transport.calls) == 1

    def test_exhausted_retries(self, tmp_path: Path) -> None:
        transport = MockTransport(HttpResponse(status=201, body=b'{"id": 5}'))
        transport.queue(*[HttpError(url="u", status=502, message="Bad Gateway") for _ in range(3)])
        core = make_core(tmp_path, token="ghp_x", transport=transport)
        _write_archives(core)
        releaser = Releaser(core, policy=NO_WAIT)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert isinstance(result, Err)
        assert result.error.kind == "release"
        assert "giving up" in result.error.message
        assert len(transport.calls) == 4

    def test_permanent_upload_failure(self, tmp_path: Path) -> None:
        transport = MockTransport(
            HttpResponse(status=201, body=b'{"id": 5}'),
            HttpError(url="u", status=422, message="Unprocessable", body=b'{"message": "already_exists"}'),
        )
        core = make_core(tmp_path, token="ghp_x", transport=transport)
        _write_archives(core)
        releaser = Releaser(core, policy=NO_WAIT)
        releaser.init()

        result = releaser.exec(RunContext(60.0), [])

        assert isinstance(result, Err)
        assert result.error.kind == "release"
        assert result.error.hint == "already_exists"
        assert len(transport.calls) == 2
