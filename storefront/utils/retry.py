"""
Caller-side retry policy.
The catalog fetcher never retries; callers that want retries wrap their own calls.
"""
import asyncio
import functools
from typing import Callable, Optional

from storefront.config import config
from storefront.errors import FetchError, TransportError
from storefront.logger import logger


class RetryExhaustedError(FetchError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_error: Optional[Exception] = None):
        super().__init__(message, status=getattr(last_error, "status", None))
        self.last_error = last_error


def async_retry(
    max_retries: Optional[int] = None,
    backoff_factor: Optional[float] = None,
    exceptions: tuple = (TransportError,)
):
    """
    Retry decorator for async functions.

    Args:
        max_retries: Maximum retry attempts (default from config)
        backoff_factor: Exponential backoff factor (default from config)
        exceptions: Exceptions to catch and retry
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            max_tries = config.MAX_RETRIES if max_retries is None else max_retries
            backoff = config.RETRY_BACKOFF if backoff_factor is None else backoff_factor

            for attempt in range(max_tries + 1):
                try:
                    if attempt > 0:
                        logger.info(f"Retry attempt {attempt}/{max_tries} for {func.__name__}")

                    return await func(*args, **kwargs)

                except exceptions as e:
                    if attempt == max_tries:
                        logger.error(f"Max retries ({max_tries}) exhausted for {func.__name__}: {e}")
                        raise RetryExhaustedError(
                            f"{func.__name__} failed after {max_tries} retries: {e}",
                            last_error=e
                        ) from e

                    delay = backoff ** attempt
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_tries + 1} failed for {func.__name__}. "
                        f"Retrying in {delay:.2f}s. Error: {e}"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
