"""Retry utilities for transient API failures.

Only idempotent reads are retried. Purchases are never wrapped: a retried
POST could buy the same boost twice.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import logfire

from promo.common.errors import ApiError, NetworkError

T = TypeVar("T")


def is_rate_limit_error(exception: Exception) -> bool:
    """Check if exception is a rate limit (429) response."""
    return isinstance(exception, ApiError) and exception.status_code == 429


def is_retryable_error(exception: Exception) -> bool:
    """Check if exception is retryable (transport failure, 429 or 5xx)."""
    if isinstance(exception, NetworkError):
        return True

    if is_rate_limit_error(exception):
        return True

    if isinstance(exception, ApiError) and exception.status_code is not None:
        # 5xx errors are typically transient
        return 500 <= exception.status_code < 600

    return False


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 8.0,
        exponential_base: float = 2.0,
    ) -> None:
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts, the first one included
            initial_delay: Initial delay in seconds before first retry
            max_delay: Maximum delay in seconds between retries
            exponential_base: Base for exponential backoff calculation
        """
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def delay_for(self, attempt: int) -> float:
        """Backoff before the retry that follows failed attempt number ``attempt``."""
        return min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay,
        )


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    name: str,
) -> T:
    """Run ``func`` until it succeeds, fails permanently, or attempts run out."""
    attempt = 0

    while True:
        try:
            result = await func()
        except Exception as e:
            attempt += 1

            if not is_retryable_error(e):
                raise

            if attempt >= config.max_attempts:
                logfire.error(
                    "retry_exhausted",
                    function=name,
                    attempts=attempt,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise

            delay = config.delay_for(attempt)
            logfire.info(
                "retrying_after_delay",
                function=name,
                attempt=attempt,
                max_attempts=config.max_attempts,
                delay_seconds=delay,
                error_type=type(e).__name__,
                is_rate_limit=is_rate_limit_error(e),
            )
            await asyncio.sleep(delay)
            continue

        if attempt > 0:
            logfire.info(
                "retry_succeeded",
                function=name,
                attempt=attempt + 1,
                total_attempts=config.max_attempts,
            )
        return result
