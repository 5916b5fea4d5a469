"""Deadline-bound cancellation context for one tool invocation.

A single ``RunContext`` is created before any phase handler initializes and is
passed down to every blocking call. Network and process calls bound their own
timeouts by ``remaining()``; waits go through ``wait()`` so that a deadline or
an explicit ``cancel()`` interrupts them.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .errors import PipelineError

__all__ = ["RunContext"]


class RunContext:
    def __init__(
        self,
        timeout: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._expires_at = clock() + timeout
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> RunContext:
        return cls(seconds)

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def cancel(self) -> None:
        self._cancelled.set()

    def cap(self, seconds: float) -> float:
        """Bound a per-call timeout by the remaining budget."""
        return min(seconds, self.remaining())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, returning False if the context ended.

        The wait is cut short by ``cancel()`` and never outlives the deadline.
        """
        if self.done:
            return False
        self._cancelled.wait(self.cap(seconds))
        return not self.done

    def error(self) -> PipelineError:
        """The error describing why this context ended."""
        if self.cancelled:
            return PipelineError(kind="cancelled", message="run was cancelled")
        return PipelineError(
            kind="timeout",
            message=f"deadline of {self.timeout:g}s exceeded",
        )
