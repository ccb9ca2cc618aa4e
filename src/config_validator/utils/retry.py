"""Retry utilities with exponential backoff."""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


def exponential_backoff(
    attempt: int, base_delay: float = 1.0, max_delay: float = 60.0, jitter: bool = True
) -> float:
    """Calculate exponential backoff delay with optional jitter."""
    delay = min(base_delay * (2**attempt), max_delay)

    if jitter:
        # Add random jitter to avoid thundering herd
        delay = delay * (0.5 + random.random() * 0.5)

    return delay


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
):
    """Decorator for retrying coroutine functions with exponential backoff.

    Only ``exceptions`` are retried; anything else, including cancellation,
    propagates immediately.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts - 1:
                        logger.error(
                            "Function %s failed after %d attempts",
                            func.__name__,
                            max_attempts,
                            extra={
                                "function": func.__name__,
                                "max_attempts": max_attempts,
                                "final_error": str(e),
                            },
                        )
                        raise

                    delay = exponential_backoff(attempt, base_delay, max_delay, jitter)

                    logger.warning(
                        "Function %s failed on attempt %d/%d, retrying in %.2fs",
                        func.__name__,
                        attempt + 1,
                        max_attempts,
                        delay,
                        extra={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "max_attempts": max_attempts,
                            "delay": delay,
                            "error": str(e),
                        },
                    )

                    if on_retry:
                        on_retry(attempt + 1, e)

                    await asyncio.sleep(delay)

            raise RuntimeError("retry_with_backoff requires max_attempts >= 1")

        return async_wrapper

    return decorator


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True
    exceptions: Tuple[Type[Exception], ...] = field(default=(Exception,))

    def create_decorator(
        self, on_retry: Optional[Callable[[int, Exception], None]] = None
    ):
        """Create a retry decorator with this configuration."""
        return retry_with_backoff(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
            exceptions=self.exceptions,
            on_retry=on_retry,
        )
