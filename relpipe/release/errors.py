"""Error types for the release publishing client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "config",
    "http",
    "unexpected_status",
    "io",
    "id_mismatch",
    "missing_file",
    "timeout",
    "cancelled",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """A release client failure.

    Attributes:
        kind: Machine-readable category.
        message: Human-readable description.
        hint: Optional suggestion for the user.
        status: HTTP status of the failed response (None if no response).
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    status: int | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class TemporaryError:
    """Marks a single failed attempt that may succeed if retried.

    This says nothing about the operation in general; the next attempt gets a
    fresh chance.
    """

    cause: ReleaseError

    @property
    def kind(self) -> ReleaseErrorKind:
        return self.cause.kind

    @property
    def message(self) -> str:
        return self.cause.message

    @property
    def hint(self) -> str | None:
        return self.cause.hint

    def pretty(self) -> str:
        return f"temporary: {self.cause.pretty()}"


type UploadError = ReleaseError | TemporaryError
