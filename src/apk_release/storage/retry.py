"""Retry utilities for storage API calls."""
from __future__ import annotations

import asyncio
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: transport errors, throttling and 5xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    should_retry: Callable[[BaseException], bool] = is_transient,
):
    """
    Decorator to retry async functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 disables retrying)
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for delay after each retry
        should_retry: Predicate deciding whether an exception is retryable
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= max_retries or not should_retry(e):
                        if max_retries:
                            log.error(
                                "api_retry_exhausted",
                                function=func.__name__,
                                attempts=attempt + 1,
                                error=str(e),
                            )
                        raise
                    log.warning(
                        "api_retry",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator
