"""Release publishing: client variants, failure classification and retries."""

from .classify import is_temporary_http_status
from .client import (
    FAKE_TOKEN,
    ClientOptions,
    FakeClient,
    GitHubClient,
    ReleaseClient,
    ReleaseId,
    ReleaseType,
    new_client,
    upload_asset_with_retries,
)
from .errors import ReleaseError, TemporaryError
from .retry import RetryPolicy, with_retries

__all__ = [
    "FAKE_TOKEN",
    "ClientOptions",
    "FakeClient",
    "GitHubClient",
    "ReleaseClient",
    "ReleaseError",
    "ReleaseId",
    "ReleaseType",
    "RetryPolicy",
    "TemporaryError",
    "is_temporary_http_status",
    "new_client",
    "upload_asset_with_retries",
    "with_retries",
]
