"""HTTP client factory and caller-side retry helper."""

from asyncio import sleep
from collections.abc import Awaitable, Callable
from functools import wraps

from typing import Any, ParamSpec, TypeVar

import httpx

from web3_concurrency.helpers.constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from web3_concurrency.helpers.exceptions import TransportError
from web3_concurrency.helpers.logging import get_logger


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance
    """
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=min(CONNECTION_TIMEOUT, timeout)),
        **kwargs,
    )


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to retry async functions on TransportError with exponential backoff.

    The client never retries on its own. Wrap caller code with this when a
    retry is wanted; RpcError and DecodeError propagate immediately since
    repeating the same request would not change the answer.

    Args:
        max_retries: Maximum number of attempts (default: 5)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries (default: 60.0)
        log_errors: Whether to log retry attempts (default: True)

    Returns:
        Decorated function that retries on TransportError

    Example:
        ```python
        from web3_concurrency.helpers.http import retry_with_backoff

        @retry_with_backoff(max_retries=3, base_delay=2.0)
        async def latest_block(web3: Web3) -> int:
            return await web3.eth.block_number()

        # Will retry up to 3 times with delays of 2s, 4s
        ```
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except TransportError as e:
                    if attempt == max_retries - 1:
                        if log_errors:
                            logger.error(
                                "%s failed after %d attempts", func.__name__, max_retries
                            )
                        raise
                    if log_errors:
                        logger.warning(
                            "%s transport error (attempt %d/%d): %s",
                            func.__name__,
                            attempt + 1,
                            max_retries,
                            e,
                        )

                # Exponential backoff with max_delay cap
                await sleep(min(base_delay * (2**attempt), max_delay))

            msg = f"{func.__name__} failed without exception"
            raise RuntimeError(msg)

        return wrapper

    return decorator


__all__ = [
    "create_http_client",
    "retry_with_backoff",
]
