"""Tests for relpipe.release.client module."""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import BinaryIO

import pytest

from relpipe.core.config import ReleaseSettings
from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.release.client import (
    FAKE_TOKEN,
    ClientOptions,
    FakeClient,
    GitHubClient,
    ReleaseId,
    new_client,
    upload_asset_with_retries,
)
from relpipe.release.errors import ReleaseError, TemporaryError, UploadError
from relpipe.release.http import HttpError, HttpResponse, MockTransport
from relpipe.release.retry import RetryPolicy

SETTINGS = ReleaseSettings(repository_owner="acme", repository="hello")
NO_WAIT = RetryPolicy(initial_delay=0.0)


def _ctx() -> RunContext:
    return RunContext(60.0)


def _asset(tmp_path: Path, name: str = "hello_v1.0.0_linux.zip", data: bytes = b"PK") -> Path:
    path = tmp_path / "archives" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class TestGitHubCreateRelease:
    def test_created_returns_id(self) -> None:
        transport = MockTransport(HttpResponse(status=201, body=b'{"id": 1234, "tag_name": "v1"}'))
        client = GitHubClient("tok", transport=transport)

        result = client.create_release("v1.0.0", "main", SETTINGS, ctx=_ctx())

        assert result == Ok(ReleaseId(1234))
        call = transport.calls[0]
        assert call.method == "POST"
        assert call.url == "https://api.github.com/repos/acme/hello/releases"
        assert call.headers["Authorization"] == "Bearer tok"
        payload = json.loads(call.body)
        assert payload["tag_name"] == "v1.0.0"
        assert payload["target_commitish"] == "main"
        assert payload["draft"] is False

    def test_empty_fields_are_omitted(self) -> None:
        transport = MockTransport(HttpResponse(status=201, body=b'{"id": 1}'))
        client = GitHubClient("tok", transport=transport)

        client.create_release("v1.0.0", "", SETTINGS, ctx=_ctx())

        payload = json.loads(transport.calls[0].body)
        assert "target_commitish" not in payload
        assert "name" not in payload
        assert "body" not in payload

    def test_notes_file_becomes_body(self, tmp_path: Path) -> None:
        notes = tmp_path / "notes.md"
        notes.write_text("## Changes\n- fixed it\n", encoding="utf-8")
        settings = ReleaseSettings(repository_owner="acme", repository="hello", release_notes_file=notes)
        transport = MockTransport(HttpResponse(status=201, body=b'{"id": 1}'))

        GitHubClient("tok", transport=transport).create_release("v1", "", settings, ctx=_ctx())

        assert json.loads(transport.calls[0].body)["body"] == "## Changes\n- fixed it\n"

    def test_unreadable_notes_file_is_io_error(self, tmp_path: Path) -> None:
        settings = ReleaseSettings(
            repository_owner="acme",
            repository="hello",
            release_notes_file=tmp_path / "missing.md",
        )
        transport = MockTransport()

        result = GitHubClient("tok", transport=transport).create_release("v1", "", settings, ctx=_ctx())

        assert isinstance(result, Err)
        assert result.error.kind == "io"
        assert transport.calls == []

    @pytest.mark.parametrize("status", [200, 202])
    def test_non_created_success_status_is_fatal(self, status: int) -> None:
        transport = MockTransport(HttpResponse(status=status, body=b'{"id": 1}'))

        result = GitHubClient("tok", transport=transport).create_release("v1", "", SETTINGS, ctx=_ctx())

        assert isinstance(result, Err)
        assert isinstance(result.error, ReleaseError)
        assert result.error.kind == "unexpected_status"
        assert result.error.message == f"github: unexpected status code: {status}"

    def test_http_failure_surfaces_service_message(self) -> None:
        transport = MockTransport(
            HttpError(url="u", status=422, message="Unprocessable", body=b'{"message": "Validation Failed"}')
        )

        result = GitHubClient("tok", transport=transport).create_release("v1", "", SETTINGS, ctx=_ctx())

        assert isinstance(result, Err)
        assert result.error.kind == "http"
        assert result.error.status == 422
        assert result.error.hint == "Validation Failed"

    def test_payload_without_id(self) -> None:
        transport = MockTransport(HttpResponse(status=201, body=b'{"tag_name": "v1"}'))

        result = GitHubClient("tok", transport=transport).create_release("v1", "", SETTINGS, ctx=_ctx())

        assert isinstance(result, Err)
        assert "no id" in result.error.message

    def test_done_context_sends_nothing(self) -> None:
        ctx = _ctx()
        ctx.cancel()
        transport = MockTransport()

        result = GitHubClient("tok", transport=transport).create_release("v1", "", SETTINGS, ctx=ctx)

        assert isinstance(result, Err)
        assert result.error.kind == "cancelled"
        assert transport.calls == []


class TestGitHubUploadAsset:
    def test_upload_uses_basename_and_length(self, tmp_path: Path) -> None:
        path = _asset(tmp_path, data=b"0123456789")
        transport = MockTransport(HttpResponse(status=201))
        client = GitHubClient("tok", transport=transport)

        with path.open("rb") as f:
            result = client.upload_asset(SETTINGS, f, ReleaseId(42), ctx=_ctx())

        assert result == Ok(None)
        call = transport.calls[0]
        assert call.url == (
            "https://uploads.github.com/repos/acme/hello/releases/42/assets?name=hello_v1.0.0_linux.zip"
        )
        assert call.headers["Content-Length"] == "10"
        assert call.headers["Content-Type"] == "application/octet-stream"
        assert call.body == b"0123456789"

    def test_missing_file(self) -> None:
        result = GitHubClient("tok", transport=MockTransport()).upload_asset(
            SETTINGS, None, ReleaseId(1), ctx=_ctx()
        )
        assert isinstance(result, Err)
        assert result.error.kind == "missing_file"

    @pytest.mark.parametrize("status", [500, 502, 503, 429, 401])
    def test_transient_status_is_temporary(self, tmp_path: Path, status: int) -> None:
        transport = MockTransport(HttpError(url="u", status=status, message="nope"))
        with _asset(tmp_path).open("rb") as f:
            result = GitHubClient("tok", transport=transport).upload_asset(
                SETTINGS, f, ReleaseId(1), ctx=_ctx()
            )
        assert isinstance(result, Err)
        assert isinstance(result.error, TemporaryError)
        assert result.error.cause.status == status

    def test_network_failure_is_temporary(self, tmp_path: Path) -> None:
        transport = MockTransport(HttpError(url="u", status=0, message="connection reset"))
        with _asset(tmp_path).open("rb") as f:
            result = GitHubClient("tok", transport=transport).upload_asset(
                SETTINGS, f, ReleaseId(1), ctx=_ctx()
            )
        assert isinstance(result, Err)
        assert isinstance(result.error, TemporaryError)

    @pytest.mark.parametrize("status", [400, 422])
    def test_malformed_request_is_permanent(self, tmp_path: Path, status: int) -> None:
        transport = MockTransport(HttpError(url="u", status=status, message="bad"))
        with _asset(tmp_path).open("rb") as f:
            result = GitHubClient("tok", transport=transport).upload_asset(
                SETTINGS, f, ReleaseId(1), ctx=_ctx()
            )
        assert isinstance(result, Err)
        assert isinstance(result.error, ReleaseError)
        assert result.error.status == status


class TestFakeClient:
    def test_create_then_upload(self, tmp_path: Path) -> None:
        client = FakeClient(rng=random.Random(7))
        created = client.create_release("v1", "", SETTINGS, ctx=_ctx())
        assert isinstance(created, Ok)
        assert created.value > 0

        with _asset(tmp_path).open("rb") as f:
            assert client.upload_asset(SETTINGS, f, created.value, ctx=_ctx()) == Ok(None)
        assert client.uploaded == ["hello_v1.0.0_linux.zip"]

    def test_id_mismatch(self, tmp_path: Path) -> None:
        client = FakeClient()
        created = client.create_release("v1", "", SETTINGS, ctx=_ctx())
        assert isinstance(created, Ok)
        other = ReleaseId(created.value + 1)

        with _asset(tmp_path).open("rb") as f:
            result = client.upload_asset(SETTINGS, f, other, ctx=_ctx())

        assert isinstance(result, Err)
        assert result.error.kind == "id_mismatch"
        assert "mismatch" in result.error.message
        assert client.uploaded == []

    def test_nil_file(self) -> None:
        client = FakeClient()
        created = client.create_release("v1", "", SETTINGS, ctx=_ctx())
        assert isinstance(created, Ok)

        result = client.upload_asset(SETTINGS, None, created.value, ctx=_ctx())

        assert isinstance(result, Err)
        assert result.error.kind == "missing_file"
        assert result.error.message == "fake: nil file"


class TestNewClient:
    def test_dry_run_needs_no_token(self) -> None:
        result = new_client("github", ClientOptions(dry_run=True))
        assert isinstance(result, Ok)
        assert isinstance(result.value, FakeClient)

    def test_missing_token(self) -> None:
        result = new_client("github", ClientOptions(token="  "))
        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert "GITHUB_TOKEN" in result.error.message

    def test_fake_token_rejected_outside_test_mode(self) -> None:
        result = new_client("github", ClientOptions(token=FAKE_TOKEN))
        assert isinstance(result, Err)
        assert result.error.kind == "config"

    def test_fake_token_in_test_mode(self) -> None:
        result = new_client("github", ClientOptions(token=FAKE_TOKEN, test_mode=True))
        assert isinstance(result, Ok)
        assert isinstance(result.value, FakeClient)

    def test_real_token(self) -> None:
        result = new_client("GitHub", ClientOptions(token="ghp_x"))
        assert isinstance(result, Ok)
        assert isinstance(result.value, GitHubClient)

    def test_unsupported_type(self) -> None:
        result = new_client("gitlab", ClientOptions(dry_run=True))
        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert "gitlab" in result.error.message


class RecordingClient:
    """Scripted upload outcomes; records whether each handle was closed."""

    def __init__(self, *outcomes: Result[None, UploadError]) -> None:
        self.outcomes = list(outcomes)
        self.handles: list[BinaryIO] = []
        self.bodies: list[bytes] = []

    def create_release(
        self, tag: str, committish: str, settings: ReleaseSettings, *, ctx: RunContext
    ) -> Result[ReleaseId, ReleaseError]:
        return Ok(ReleaseId(1))

    def upload_asset(
        self,
        settings: ReleaseSettings,
        file: BinaryIO | None,
        release_id: ReleaseId,
        *,
        ctx: RunContext,
    ) -> Result[None, UploadError]:
        assert file is not None
        self.handles.append(file)
        self.bodies.append(file.read())
        return self.outcomes.pop(0)


def _temporary(status: int = 503) -> Err[TemporaryError]:
    return Err(TemporaryError(ReleaseError(kind="http", message="busy", status=status)))


class TestUploadAssetWithRetries:
    def test_reopens_file_for_every_attempt(self, tmp_path: Path) -> None:
        path = _asset(tmp_path, data=b"payload")
        client = RecordingClient(_temporary(), _temporary(), Ok(None))

        result = upload_asset_with_retries(
            client, SETTINGS, ReleaseId(1), lambda: path.open("rb"), ctx=_ctx(), policy=NO_WAIT
        )

        assert result == Ok(None)
        assert client.bodies == [b"payload"] * 3
        assert len({id(h) for h in client.handles}) == 3
        assert all(h.closed for h in client.handles)

    def test_permanent_failure_is_not_retried(self, tmp_path: Path) -> None:
        path = _asset(tmp_path)
        fatal = ReleaseError(kind="http", message="bad", status=422)
        client = RecordingClient(Err(fatal), Ok(None))

        result = upload_asset_with_retries(
            client, SETTINGS, ReleaseId(1), lambda: path.open("rb"), ctx=_ctx(), policy=NO_WAIT
        )

        assert result == Err(fatal)
        assert len(client.handles) == 1
        assert client.handles[0].closed

    def test_exhausted_attempts_return_last_temporary_error(self, tmp_path: Path) -> None:
        path = _asset(tmp_path)
        client = RecordingClient(*[_temporary() for _ in range(3)])

        result = upload_asset_with_retries(
            client,
            SETTINGS,
            ReleaseId(1),
            lambda: path.open("rb"),
            ctx=_ctx(),
            policy=RetryPolicy(max_attempts=3, initial_delay=0.0),
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, TemporaryError)
        assert len(client.handles) == 3

    def test_open_failure_is_fatal_io(self, tmp_path: Path) -> None:
        client = RecordingClient()
        missing = tmp_path / "nope.zip"

        result = upload_asset_with_retries(
            client, SETTINGS, ReleaseId(1), lambda: missing.open("rb"), ctx=_ctx(), policy=NO_WAIT
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, ReleaseError)
        assert result.error.kind == "io"
        assert client.handles == []

    def test_github_retries_then_succeeds(self, tmp_path: Path) -> None:
        path = _asset(tmp_path, data=b"zip")
        transport = MockTransport(
            HttpError(url="u", status=502, message="Bad Gateway"),
            HttpError(url="u", status=0, message="connection reset"),
            HttpResponse(status=201),
        )
        client = GitHubClient("tok", transport=transport)
        retries: list[int] = []

        result = upload_asset_with_retries(
            client,
            SETTINGS,
            ReleaseId(9),
            lambda: path.open("rb"),
            ctx=_ctx(),
            policy=NO_WAIT,
            on_retry=lambda n, e, d: retries.append(n),
        )

        assert result == Ok(None)
        assert retries == [1, 2]
        assert [c.body for c in transport.calls] == [b"zip"] * 3

    def test_cancelled_context(self, tmp_path: Path) -> None:
        path = _asset(tmp_path)
        ctx = _ctx()
        ctx.cancel()

        result = upload_asset_with_retries(
            RecordingClient(), SETTINGS, ReleaseId(1), lambda: path.open("rb"), ctx=ctx, policy=NO_WAIT
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, PipelineError)
        assert result.error.kind == "cancelled"
