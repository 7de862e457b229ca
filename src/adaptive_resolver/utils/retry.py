"""
Backoff and deadline helpers for document calls.

Resolution itself never loops. ``retry_async`` wraps a whole resolve call
for callers that expect an element to appear late; ``with_timeout`` bounds
one count or evaluate against the live document.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Backoff schedule for retry_async.

    Attributes:
        max_attempts: Calls made in total, the first one included
        initial_delay_ms: Pause after the first failure
        max_delay_ms: Ceiling for the growing pause
        backoff_multiplier: Growth factor applied after every pause
        retry_on: Errors that trigger another call; anything else propagates
        on_retry: Called with (attempt number, error) before each pause
    """
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retry_on: Tuple[Type[Exception], ...] = (Exception,)
    on_retry: Optional[Callable[[int, Exception], None]] = None

    def delays(self):
        """Pauses between consecutive calls, in milliseconds."""
        delay = float(self.initial_delay_ms)
        for _ in range(self.max_attempts - 1):
            yield delay
            delay = min(delay * self.backoff_multiplier, self.max_delay_ms)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)`` until it succeeds or attempts run out.

    Raises:
        The error from the final call
    """
    attempt = 1
    for delay_ms in config.delays():
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            logger.warning(f"Attempt {attempt}/{config.max_attempts} failed: {e}; next in {delay_ms:.0f}ms")
            if config.on_retry:
                config.on_retry(attempt, e)
            await asyncio.sleep(delay_ms / 1000)
        attempt += 1
    return await func(*args, **kwargs)


async def with_timeout(
    coro: Awaitable[T],
    timeout_ms: float,
    error_message: str = "Operation timed out",
) -> T:
    """Await ``coro`` for at most ``timeout_ms``, raising asyncio.TimeoutError with ``error_message``."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        raise asyncio.TimeoutError(error_message)
