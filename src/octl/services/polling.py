"""Bounded polling and retry helpers shared by every provider adapter."""

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

DelayStrategy = Callable[[int], float]


def constant_delay(seconds: float) -> DelayStrategy:
    return lambda _attempt: seconds


def linear_delay(step_seconds: float) -> DelayStrategy:
    """Delay grows with the attempt number: step, 2*step, 3*step..."""
    return lambda attempt: step_seconds * attempt


def poll_until(
    check: Callable[[], bool],
    max_attempts: int,
    delay: DelayStrategy,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Call ``check`` until it returns True or the attempt budget is spent.

    Returns whether the condition was met; exhausting the budget is not an
    error, callers decide what that means.
    """
    for attempt in range(1, max_attempts + 1):
        if check():
            return True
        if attempt < max_attempts:
            sleep(delay(attempt))
    return False


def retry_on(
    action: Callable[[], T],
    should_retry: Callable[[Exception], bool],
    max_attempts: int,
    delay: DelayStrategy,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """Run ``action``, retrying only errors accepted by ``should_retry``.

    The last error is re-raised once ``max_attempts`` is reached.
    """
    attempt = 1
    while True:
        try:
            return action()
        except Exception as exc:
            if attempt >= max_attempts or not should_retry(exc):
                raise
            if on_retry is not None:
                on_retry(attempt, exc)
            sleep(delay(attempt))
            attempt += 1
