"""
Opt-in retry decorator.

The transport never retries by itself. Callers that want retries wrap their
own coroutine functions:

    @retry_decorator(max_attempts=3)
    async def fetch_depth():
        return await client.market.depth("BTCUSDT")

TransportError is retried with backoff, RateLimited after its ``retry_after``.
ExchangeError and DecodeError are never retried.
"""

import asyncio
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from binance_async.infrastructure.exceptions.exchange import (
    DecodeError, ExchangeError, RateLimited, TransportError,
)
from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface


def retry_decorator(
    max_attempts: int = 3,
    backoff: str = "exponential",
    base_delay: float = 0.1,
    max_delay: float = 5.0,
    exceptions: Tuple[Type[Exception], ...] = (TransportError,),
    retry_rate_limited: bool = True,
    logger: Optional[HFTLoggerInterface] = None,
):
    """
    Retry decorator for async REST calls.

    Args:
        max_attempts: Maximum attempts including the first call
        backoff: Backoff strategy - "exponential", "linear", "fixed"
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds (also caps RateLimited waits)
        exceptions: Exceptions retried with backoff
        retry_rate_limited: Wait ``retry_after`` and retry on RateLimited
        logger: Logger for retry notices

    Returns:
        Decorated async function with retry logic
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    log = logger or get_logger("rest.retry")

    def compute_delay(attempt: int) -> float:
        if backoff == "exponential":
            return min(base_delay * (2 ** (attempt - 1)), max_delay)
        if backoff == "linear":
            return min(base_delay * attempt, max_delay)
        return base_delay

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except (ExchangeError, DecodeError):
                    raise
                except RateLimited as e:
                    if not retry_rate_limited or attempt == max_attempts:
                        raise
                    delay = min(e.retry_after, max_delay)
                    log.warning("Rate budget exhausted, waiting", function=func.__name__,
                                attempt=attempt, delay=delay)
                    await asyncio.sleep(delay)
                except exceptions as e:
                    if attempt == max_attempts:
                        raise
                    delay = compute_delay(attempt)
                    log.debug("Request failed, retrying", function=func.__name__,
                              attempt=attempt, delay=delay, error=str(e))
                    await asyncio.sleep(delay)

        return wrapper
    return decorator


def retry_with_backoff(
    attempts: int = 3,
    initial_delay: float = 0.1,
    max_delay: float = 5.0
):
    """Exponential backoff retry with defaults."""
    return retry_decorator(
        max_attempts=attempts,
        backoff="exponential",
        base_delay=initial_delay,
        max_delay=max_delay
    )
