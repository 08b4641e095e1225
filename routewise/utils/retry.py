"""
Retry utilities with exponential backoff for handling transient provider failures.
"""

import time
from functools import wraps
from typing import Callable, Type, Tuple
import structlog

from .exceptions import TransientError, ProviderRateLimitError

logger = structlog.get_logger()


class RetryConfig:
    """Configuration for retry behavior with exponential backoff."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        retryable_exceptions: Tuple[Type[Exception], ...] = (TransientError,)
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (first call included)
            base_delay: Initial delay in seconds before first retry
            max_delay: Maximum delay in seconds between retries
            exponential_base: Base for exponential backoff calculation
            retryable_exceptions: Tuple of exception types that should trigger retries
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retryable_exceptions = retryable_exceptions

    def delay_for(self, attempt: int, error: Exception = None) -> float:
        """Backoff delay after the given zero-based attempt."""
        if isinstance(error, ProviderRateLimitError) and error.retry_after:
            return min(float(error.retry_after), self.max_delay)
        return min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )


def retry_with_exponential_backoff(
    config: RetryConfig = None,
    max_attempts: int = None,
    base_delay: float = None,
    max_delay: float = None,
    exponential_base: float = None,
    retryable_exceptions: Tuple[Type[Exception], ...] = None,
    sleep: Callable[[float], None] = None
) -> Callable:
    """
    Decorator for automatic retry with exponential backoff.

    Can be used with a RetryConfig object or individual parameters.

    Args:
        config: RetryConfig object (if provided, other params are ignored)
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        retryable_exceptions: Tuple of exception types to retry
        sleep: Sleep function (defaults to time.sleep)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_exponential_backoff(max_attempts=3, base_delay=0.5)
        def fetch_directions():
            # code that might hit OVER_QUERY_LIMIT
            pass
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts or 3,
            base_delay=base_delay if base_delay is not None else 1.0,
            max_delay=max_delay or 10.0,
            exponential_base=exponential_base or 2.0,
            retryable_exceptions=retryable_exceptions or (TransientError,)
        )

    def decorator(func: Callable) -> Callable:
        # partials and callable objects have no __name__
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        def wrapper(*args, **kwargs):
            do_sleep = sleep or time.sleep

            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    # Don't retry on last attempt
                    if attempt == config.max_attempts - 1:
                        logger.error(
                            "retry_exhausted",
                            function=name,
                            attempts=config.max_attempts,
                            error=str(e),
                            error_type=type(e).__name__
                        )
                        raise

                    delay = config.delay_for(attempt, e)

                    logger.warning(
                        "retry_attempt",
                        function=name,
                        attempt=attempt + 1,
                        max_attempts=config.max_attempts,
                        error=str(e),
                        error_type=type(e).__name__,
                        retry_delay_seconds=delay
                    )

                    do_sleep(delay)

        return wrapper
    return decorator
