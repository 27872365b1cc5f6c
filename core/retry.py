"""
Retry utilities for marketplace calls
"""

import asyncio
import functools
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

T = TypeVar('T')


def async_retry(
    max_attempts: int = 3,
    delay: float = 2.0,
    backoff: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, int, BaseException], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """
    Decorator for async functions with bounded retry.

    Args:
        max_attempts: Total attempts, including the first one
        delay: Delay before the second attempt (seconds)
        backoff: Multiplier applied to the delay after each retry (1.0 = fixed)
        exceptions: Exceptions that trigger a retry; anything else propagates at once
        on_retry: Called as ``on_retry(attempt, max_attempts, error)`` after a failed attempt
            that will be retried
        sleep: Awaitable sleep, swappable in tests

    The last exception is re-raised once attempts are exhausted.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            current_delay = delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts:
                        raise
                    if on_retry:
                        on_retry(attempt, max_attempts, e)
                    if current_delay > 0:
                        await sleep(current_delay)
                    current_delay *= backoff

            raise AssertionError("unreachable")  # loop always returns or raises

        return wrapper
    return decorator
