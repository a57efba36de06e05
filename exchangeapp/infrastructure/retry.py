"""
Startup Retry
=============

Bounded, constant-interval retry used by the dependency bootstrappers.

Every failed attempt is logged; the caller receives either the result of
the first successful attempt or the last error together with the number of
attempts made. There is no sleep after the final attempt.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from exchangeapp.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait between tries."""
    max_attempts: int
    interval_seconds: float

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")


class RetryExhausted(Exception):
    """All attempts failed. ``last_error`` is the error of the final attempt."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"gave up after {attempts} attempts: {last_error}")


async def retry_with_backoff(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str,
    sleep: Optional[Sleep] = None,
) -> T:
    """
    Run ``operation`` until it succeeds or the policy is used up.

    Args:
        operation: Coroutine function taking the 1-based attempt number
        policy: Attempt bound and constant wait between attempts
        description: Dependency name used in log records
        sleep: Awaitable sleep, ``asyncio.sleep`` unless given

    Returns:
        Whatever the first successful attempt returned.

    Raises:
        RetryExhausted: If every attempt raised.
    """
    sleep = sleep or asyncio.sleep
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation(attempt)
        except Exception as e:
            last_error = e
            logger.warning(
                f"{description} connection attempt failed",
                extra={
                    "dependency": description,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

        if attempt < policy.max_attempts:
            await sleep(policy.interval_seconds)

    raise RetryExhausted(policy.max_attempts, last_error)
