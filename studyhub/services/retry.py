"""Bounded retry with exponential backoff for async operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from studyhub.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(error: BaseException) -> bool:
    """Errors opt out of retrying by setting `retryable = False`."""
    return getattr(error, "retryable", True)


@dataclass
class RetryPolicy:
    """
    Retry configuration.

    The delay before retry n (0-based) is min(initial_delay * 2**n, max_delay).
    An operation runs at most max_retries + 1 times.
    """

    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 5.0
    should_retry: Callable[[BaseException], bool] = _is_retryable
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def delay_for(self, retry_number: int) -> float:
        return min(self.initial_delay * (2 ** retry_number), self.max_delay)

    @classmethod
    def for_uploads(cls, settings: Settings, **overrides) -> "RetryPolicy":
        return cls(
            max_retries=settings.upload_max_retries,
            initial_delay=settings.upload_initial_delay_seconds,
            max_delay=settings.upload_max_delay_seconds,
            **overrides,
        )

    @classmethod
    def for_generation(cls, settings: Settings, **overrides) -> "RetryPolicy":
        return cls(
            max_retries=settings.generation_max_retries,
            initial_delay=settings.generation_initial_delay_seconds,
            max_delay=settings.generation_max_delay_seconds,
            **overrides,
        )


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
) -> T:
    """
    Run `operation` until it succeeds or the policy is exhausted.

    Args:
        operation: Callable that returns a new awaitable each invocation.
        policy: Retry limits and backoff.
        description: Label used in log messages.

    Returns:
        The operation's result.

    Raises:
        The last exception raised by the operation, or the first one the
        policy refuses to retry.
    """
    max_attempts = policy.max_retries + 1
    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not policy.should_retry(e) or attempt == max_attempts - 1:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                description, attempt + 1, max_attempts, delay, str(e),
            )
            await policy.sleep(delay)
    raise AssertionError("unreachable")
