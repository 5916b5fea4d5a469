from __future__ import annotations

from http import HTTPStatus

# Statuses meaning the request itself is malformed; retrying cannot help.
_PERMANENT_STATUSES = frozenset(
    {
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.UNPROCESSABLE_ENTITY,
    }
)


def is_temporary_http_status(status: int) -> bool:
    """Return True if a failed attempt with this status may succeed on retry.

    Returns True when not sure: every non-success status outside the small
    deny list is treated as transient.
    """
    return status not in _PERMANENT_STATUSES
