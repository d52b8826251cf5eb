"""
Retry utilities for transport calls.

Only connection-level failures are retried: the request never reached
SQS / SNS, so repeating it cannot duplicate a side effect. Anything the
service actually answered (throttling included) is left to botocore's own
retry handler and to the caller.
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Callable, Any

from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
)

from queuejack.base.logger import qj_logger

CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    EndpointConnectionError,
    ConnectTimeoutError,
)


def backoff_delays(
    attempts: int, base_delay: float, backoff_factor: float, max_delay: float
) -> list[float]:
    """Sleep intervals between *attempts* tries, capped at *max_delay*."""
    delays = []
    delay = base_delay
    for _ in range(max(attempts - 1, 0)):
        delays.append(delay)
        delay = min(delay * backoff_factor, max_delay)
    return delays


def retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: tuple[type[BaseException], ...] = CONNECTION_ERRORS,
) -> Callable:
    """Decorator: retry a transport call when the endpoint could not be reached.

    Args:
        max_attempts: Maximum number of total attempts (including the first).
        base_delay: Delay in seconds before the first retry.
        max_delay: Cap on the delay between retries.
        backoff_factor: Multiplier applied to the delay after each retry.
        retryable_exceptions: Exception types that trigger a retry.

    Returns:
        Decorated function; the last exception is re-raised once every
        attempt has failed.
    """

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(max_attempts, base_delay, backoff_factor, max_delay)
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt == max_attempts:
                        qj_logger.error(
                            f"All {max_attempts} attempts failed for {fn.__qualname__}: {exc}",
                            operation=fn.__name__,
                        )
                        raise
                    delay = delays[attempt - 1]
                    qj_logger.warning(
                        f"Attempt {attempt}/{max_attempts} for {fn.__qualname__} failed "
                        f"({exc}), retrying in {delay:.1f}s",
                        operation=fn.__name__,
                    )
                    time.sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
