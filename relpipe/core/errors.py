"""Pipeline error shape and process exit codes.

Phase handlers report failures as ``PipelineError`` values. The CLI maps the
error ``kind`` to one of the stable ``ErrorCode`` exit statuses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

__all__ = ["ErrorCode", "ErrorKind", "PipelineError", "exit_code_for"]


ErrorKind = Literal[
    "config",
    "build",
    "archive",
    "release",
    "network",
    "io",
    "timeout",
    "cancelled",
    "internal",
]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad arguments)
    - 2: Configuration error (missing token, bad config file)
    - 3: Build or archive step failed
    - 4: Network error (release service unreachable or refused the request)
    - 5: I/O error (file not found, permission denied)
    - 6: Timeout or cancellation
    - 70: Internal error (unexpected fault)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    TIMEOUT = 6
    INTERNAL_ERROR = 70

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


@dataclass(frozen=True, slots=True)
class PipelineError:
    """Error returned by a phase handler or the top-level run.

    Attributes:
        kind: Machine-readable category.
        message: Human-readable description.
        hint: Optional suggestion for the user.
        trace: Formatted stack trace, set only for unexpected faults.
    """

    kind: ErrorKind
    message: str
    hint: str | None = None
    trace: str | None = None

    @property
    def is_timeout(self) -> bool:
        return self.kind in ("timeout", "cancelled")

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


_EXIT_CODES: dict[str, ErrorCode] = {
    "config": ErrorCode.CONFIG_ERROR,
    "build": ErrorCode.BUILD_ERROR,
    "archive": ErrorCode.BUILD_ERROR,
    "release": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "io": ErrorCode.IO_ERROR,
    "timeout": ErrorCode.TIMEOUT,
    "cancelled": ErrorCode.TIMEOUT,
    "internal": ErrorCode.INTERNAL_ERROR,
}


def exit_code_for(kind: str) -> ErrorCode:
    """Map an error kind to its exit code (unknown kinds are internal errors)."""
    return _EXIT_CODES.get(kind, ErrorCode.INTERNAL_ERROR)
