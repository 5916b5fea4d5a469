"""Bounded retry loop around a fallible operation.

The operation is a zero-argument closure producing one fresh attempt. It must
acquire whatever it needs (e.g. reopen a file) on every call: a resource
consumed by a failed attempt cannot be reused.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from relpipe.core.errors import PipelineError
from relpipe.core.result import Err, Ok, Result
from relpipe.core.runctx import RunContext

__all__ = ["DEFAULT_POLICY", "RetryPolicy", "with_retries"]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff with a hard attempt limit.

    Attributes:
        max_attempts: Total number of calls, first attempt included.
        initial_delay: Seconds to wait after the first failure.
        multiplier: Factor applied to the delay after each failure.
        max_delay: Upper bound for a single wait.
    """

    max_attempts: int = 10
    initial_delay: float = 0.077
    multiplier: float = 2.0
    max_delay: float = 10.0

    def delay(self, failures: int) -> float:
        """Delay to wait after the given number of consecutive failures (>= 1)."""
        d = self.initial_delay * (self.multiplier ** max(0, failures - 1))
        return min(d, self.max_delay)


DEFAULT_POLICY = RetryPolicy()


def with_retries[T, E](
    attempt: Callable[[], Result[T, E]],
    *,
    retryable: Callable[[E], bool],
    ctx: RunContext,
    policy: RetryPolicy = DEFAULT_POLICY,
    on_retry: Callable[[int, E, float], None] | None = None,
) -> Result[T, E | PipelineError]:
    """Run ``attempt`` until it succeeds, fails fatally, or attempts run out.

    Args:
        attempt: Produces one fresh attempt.
        retryable: Decides whether an error may go away on retry.
        ctx: Run context; waits stop as soon as it ends.
        policy: Attempt limit and backoff.
        on_retry: Called as ``(attempt_number, error, delay)`` before each wait.

    Returns:
        The first Ok; the first non-retryable error; the last error once
        ``policy.max_attempts`` calls were made; or the context's
        timeout/cancelled error if it ended while waiting.
    """
    if ctx.done:
        return Err(ctx.error())

    attempts = max(1, policy.max_attempts)
    for n in range(1, attempts + 1):
        result = attempt()
        if isinstance(result, Ok):
            return result

        error = result.error
        if not retryable(error) or n == attempts:
            return Err(error)

        delay = policy.delay(n)
        if on_retry is not None:
            on_retry(n, error, delay)
        if not ctx.wait(delay):
            return Err(ctx.error())

    # Unreachable: the loop returns on its last iteration.
    raise AssertionError("retry loop exited without a result")
