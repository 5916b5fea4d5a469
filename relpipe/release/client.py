"""Release publishing clients.

Two variants implement ``ReleaseClient``:

- ``GitHubClient`` talks to the GitHub REST API.
- ``FakeClient`` never touches the network. It backs ``--try`` runs and lets
  the whole pipeline be exercised without a token.

``new_client`` picks one once, at startup, from explicit options.
"""

from __future__ import annotations

import json
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import BinaryIO, NewType, Protocol
from urllib.parse import quote

from relpipe.core.config import ReleaseSettings
from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext
from relpipe.core.structured import as_str_dict, get_int
from relpipe.release.classify import is_temporary_http_status
from relpipe.release.errors import ReleaseError, TemporaryError, UploadError
from relpipe.release.http import HttpError, HttpTransport, UrllibTransport
from relpipe.release.retry import DEFAULT_POLICY, RetryPolicy, with_retries

__all__ = [
    "FAKE_TOKEN",
    "ClientOptions",
    "FakeClient",
    "GitHubClient",
    "ReleaseClient",
    "ReleaseId",
    "ReleaseType",
    "TOKEN_ENV_VAR",
    "new_client",
    "upload_asset_with_retries",
]

ReleaseId = NewType("ReleaseId", int)

TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Accepted as a token only in test mode, where it selects FakeClient.
FAKE_TOKEN = "faketoken"

GITHUB_API_URL = "https://api.github.com"
GITHUB_UPLOADS_URL = "https://uploads.github.com"
GITHUB_API_VERSION = "2022-11-28"

REQUEST_TIMEOUT_SECONDS = 60.0
UPLOAD_TIMEOUT_SECONDS = 10 * 60.0


class ReleaseType(StrEnum):
    GITHUB = "github"


class ReleaseClient(Protocol):
    def create_release(
        self,
        tag: str,
        committish: str,
        settings: ReleaseSettings,
        *,
        ctx: RunContext,
    ) -> Result[ReleaseId, ReleaseError]:
        """Create a release and return its identifier."""
        ...

    def upload_asset(
        self,
        settings: ReleaseSettings,
        file: BinaryIO | None,
        release_id: ReleaseId,
        *,
        ctx: RunContext,
    ) -> Result[None, UploadError]:
        """Upload one open file as an asset named after its base filename."""
        ...


def _context_error(ctx: RunContext) -> ReleaseError:
    e = ctx.error()
    return ReleaseError(kind="cancelled" if e.kind == "cancelled" else "timeout", message=e.message)


class GitHubClient:
    """Live client for GitHub releases."""

    def __init__(
        self,
        token: str,
        *,
        transport: HttpTransport | None = None,
        api_url: str = GITHUB_API_URL,
        uploads_url: str = GITHUB_UPLOADS_URL,
    ) -> None:
        self._token = token
        self._transport = transport or UrllibTransport()
        self._api_url = api_url.rstrip("/")
        self._uploads_url = uploads_url.rstrip("/")

    def _headers(self, **extra: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            **extra,
        }

    def create_release(
        self,
        tag: str,
        committish: str,
        settings: ReleaseSettings,
        *,
        ctx: RunContext,
    ) -> Result[ReleaseId, ReleaseError]:
        body = ""
        if settings.release_notes_file is not None:
            try:
                body = settings.release_notes_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                return Err(
                    ReleaseError(
                        kind="io",
                        message=f"github: failed to read release notes: {e}",
                        hint=str(settings.release_notes_file),
                    )
                )

        payload: dict[str, object] = {
            "draft": settings.draft,
            "prerelease": settings.prerelease,
            "generate_release_notes": settings.generate_release_notes_on_host,
        }
        # Empty strings are omitted so the service applies its own defaults.
        for key, value in (
            ("tag_name", tag),
            ("target_commitish", committish),
            ("name", settings.name),
            ("body", body),
        ):
            if value:
                payload[key] = value

        if ctx.done:
            return Err(_context_error(ctx))

        url = f"{self._api_url}/repos/{settings.repository_owner}/{settings.repository}/releases"
        result = self._transport.request(
            "POST",
            url,
            headers=self._headers(**{"Content-Type": "application/json"}),
            body=json.dumps(payload).encode("utf-8"),
            timeout=ctx.cap(REQUEST_TIMEOUT_SECONDS),
        )
        if isinstance(result, Err):
            if ctx.done:
                return Err(_context_error(ctx))
            return Err(_http_error("github: create release failed", result.error))

        response = result.value
        if response.status != 201:
            return Err(
                ReleaseError(
                    kind="unexpected_status",
                    message=f"github: unexpected status code: {response.status}",
                    status=response.status,
                )
            )

        try:
            data = as_str_dict(json.loads(response.body.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(ReleaseError(kind="http", message=f"github: invalid release payload: {e}"))

        release_id = get_int(data, "id") if data is not None else None
        if release_id is None:
            return Err(ReleaseError(kind="http", message="github: release payload has no id"))
        return Ok(ReleaseId(release_id))

    def upload_asset(
        self,
        settings: ReleaseSettings,
        file: BinaryIO | None,
        release_id: ReleaseId,
        *,
        ctx: RunContext,
    ) -> Result[None, UploadError]:
        if file is None:
            return Err(ReleaseError(kind="missing_file", message="github: no file to upload"))

        name = Path(file.name).name
        try:
            size = os.fstat(file.fileno()).st_size
        except OSError as e:
            return Err(ReleaseError(kind="io", message=f"github: cannot stat {name}: {e}"))

        if ctx.done:
            return Err(_context_error(ctx))

        url = (
            f"{self._uploads_url}/repos/{settings.repository_owner}/{settings.repository}"
            f"/releases/{release_id}/assets?name={quote(name)}"
        )
        result = self._transport.request(
            "POST",
            url,
            headers=self._headers(
                **{"Content-Type": "application/octet-stream", "Content-Length": str(size)}
            ),
            body=file,
            timeout=ctx.cap(UPLOAD_TIMEOUT_SECONDS),
        )
        if isinstance(result, Ok):
            return Ok(None)

        error = result.error
        if ctx.done:
            return Err(_context_error(ctx))

        failure = _http_error(f"github: upload of {name} failed", error)
        if error.has_response and not is_temporary_http_status(error.status):
            return Err(failure)
        return Err(TemporaryError(failure))


def _http_error(prefix: str, error: HttpError) -> ReleaseError:
    hint: str | None = None
    if error.body:
        try:
            doc = as_str_dict(json.loads(error.body.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError):
            doc = None
        if doc is not None and isinstance(doc.get("message"), str):
            hint = str(doc["message"])
    return ReleaseError(
        kind="http",
        message=f"{prefix}: {error}",
        hint=hint,
        status=error.status or None,
    )


class FakeClient:
    """Dry-run client: fabricates a release id and accepts matching uploads."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.release_id: ReleaseId | None = None
        self.created: list[tuple[str, str, ReleaseSettings]] = []
        self.uploaded: list[str] = []

    def create_release(
        self,
        tag: str,
        committish: str,
        settings: ReleaseSettings,
        *,
        ctx: RunContext,
    ) -> Result[ReleaseId, ReleaseError]:
        self.release_id = ReleaseId(self._rng.randint(1, 2**63 - 1))
        self.created.append((tag, committish, settings))
        return Ok(self.release_id)

    def upload_asset(
        self,
        settings: ReleaseSettings,
        file: BinaryIO | None,
        release_id: ReleaseId,
        *,
        ctx: RunContext,
    ) -> Result[None, UploadError]:
        if self.release_id != release_id:
            return Err(
                ReleaseError(
                    kind="id_mismatch",
                    message=f"fake: release id mismatch: {self.release_id} != {release_id}",
                    hint="upload only to a release created in this run",
                )
            )
        if file is None:
            return Err(ReleaseError(kind="missing_file", message="fake: nil file"))
        self.uploaded.append(Path(file.name).name)
        return Ok(None)


@dataclass(frozen=True, slots=True)
class ClientOptions:
    """Inputs for client selection.

    Attributes:
        token: Access token for the release service (empty if unset).
        dry_run: Select the FakeClient; no token needed.
        test_mode: Allow FAKE_TOKEN to select the FakeClient.
    """

    token: str = ""
    dry_run: bool = False
    test_mode: bool = False


def new_client(
    release_type: str,
    options: ClientOptions,
    *,
    transport: HttpTransport | None = None,
) -> Result[ReleaseClient, ReleaseError]:
    """Select the release client for this run.

    Errors are configuration errors and are reported before any network call.
    """
    try:
        typ = ReleaseType(release_type.lower())
    except ValueError:
        return Err(
            ReleaseError(
                kind="config",
                message=f"unsupported release type: {release_type!r}",
                hint="only github is supported for now",
            )
        )

    if options.dry_run:
        return Ok(FakeClient())

    token = options.token.strip()
    if not token:
        return Err(
            ReleaseError(
                kind="config",
                message=f"{typ.value}: missing {TOKEN_ENV_VAR!r} env var",
                hint=f"export {TOKEN_ENV_VAR}=<token>, or use --try for a dry run",
            )
        )

    if token == FAKE_TOKEN:
        if not options.test_mode:
            return Err(
                ReleaseError(
                    kind="config",
                    message=f"{TOKEN_ENV_VAR} holds the test-only fake token",
                    hint="the fake token is only accepted in test mode",
                )
            )
        return Ok(FakeClient())

    return Ok(GitHubClient(token, transport=transport))


def upload_asset_with_retries(
    client: ReleaseClient,
    settings: ReleaseSettings,
    release_id: ReleaseId,
    open_file: Callable[[], BinaryIO],
    *,
    ctx: RunContext,
    policy: RetryPolicy = DEFAULT_POLICY,
    on_retry: Callable[[int, UploadError, float], None] | None = None,
) -> Result[None, UploadError | PipelineError]:
    """Upload one asset, retrying attempts that failed temporarily.

    ``open_file`` is called for every attempt; the handle it returns is closed
    when the attempt ends, whatever the outcome. Failing to open is fatal.
    """

    def attempt() -> Result[None, UploadError]:
        try:
            f = open_file()
        except OSError as e:
            return Err(ReleaseError(kind="io", message=f"failed to open asset: {e}"))
        with f:
            return client.upload_asset(settings, f, release_id, ctx=ctx)

    return with_retries(
        attempt,
        retryable=lambda e: isinstance(e, TemporaryError),
        ctx=ctx,
        policy=policy,
        on_retry=on_retry,
    )
