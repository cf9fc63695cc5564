"""Retry utility with exponential backoff for handling transient API errors."""

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from common.gpt_utils import ModelJSONParsingError

logger = logging.getLogger(__name__)


def calculate_exponential_backoff_delay(
    initial_delay: float,
    attempt: int,
    exponential_base: int,
    max_delay: float,
) -> float:
    """
    Calculate delay with exponential backoff and jitter.

    Args:
        initial_delay: Initial delay in seconds
        attempt: Current attempt number (0-indexed)
        exponential_base: Base for exponential calculation (e.g., 2)
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds with jitter applied
    """
    delay = initial_delay * (exponential_base**attempt)
    delay = min(delay, max_delay)

    # Add jitter (0-50% of delay) to prevent thundering herd
    jitter = random.uniform(0, delay * 0.5)
    return delay + jitter


def is_transient_error(error: Exception) -> bool:
    """
    Determine if an error is transient (should retry) or permanent.

    Network failures and unparsable model output are transient. Everything
    else is treated as permanent to avoid retrying a request the provider
    will keep rejecting.

    Args:
        error: Exception to check

    Returns:
        True if error is transient and should be retried, False otherwise
    """
    if isinstance(error, ModelJSONParsingError):
        return True

    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True

    if error.__cause__ is not None and isinstance(error.__cause__, Exception):
        return is_transient_error(error.__cause__)

    return False


def retry_with_exponential_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    exponential_base: int = 2,
    max_delay: float = 60.0,
    is_retryable: Optional[Callable[[Exception], bool]] = None,
    sleep_func: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator that adds retry logic with exponential backoff to async functions.

    Only retries errors accepted by ``is_retryable`` (``is_transient_error``
    by default). Permanent errors fail immediately.

    Args:
        max_retries: Maximum number of retry attempts (after initial try)
        initial_delay: Initial delay in seconds before first retry
        exponential_base: Base for exponential backoff calculation
        max_delay: Maximum delay in seconds between retries
        is_retryable: Predicate deciding whether an error is worth retrying
        sleep_func: Awaitable sleep used between attempts

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_exponential_backoff(max_retries=3, initial_delay=1)
        async def fetch_data():
            return await api_call()
    """
    should_retry = is_retryable or is_transient_error

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except Exception as e:
                    if not should_retry(e):
                        logger.error(
                            f"❌ Permanent error in {func.__name__}: {e}. Not retrying."
                        )
                        raise

                    if attempt >= max_retries:
                        if max_retries:
                            logger.error(
                                f"❌ Max retries ({max_retries}) exceeded for {func.__name__}. Last error: {e}"
                            )
                        raise

                    delay = calculate_exponential_backoff_delay(
                        initial_delay=initial_delay,
                        attempt=attempt,
                        exponential_base=exponential_base,
                        max_delay=max_delay,
                    )

                    logger.warning(
                        f"⚠️  Transient error in {func.__name__}: {e}. "
                        f"Retry {attempt + 1}/{max_retries} in {delay:.2f}s..."
                    )

                    await sleep_func(delay)

        return wrapper

    return decorator
