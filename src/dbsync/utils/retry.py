"""
Retry decorator with exponential backoff for repository operations

Provides retry logic for transient failures with:
- Exponential backoff (base 2.0)
- Jitter to prevent thundering herd
- Configurable max retries and retryable exception types
- Callback support for metrics integration

The traversal cursor never retries on its own; hosts wrap a poll cycle:

    from dbsync.utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=3, retryable_exceptions=(ConnectivityError,))
    def poll():
        return poller.poll_cycle()
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Add random jitter to prevent thundering herd (default: True)
        retryable_exceptions: Tuple of exception types to retry (default: all exceptions)
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            func_name = getattr(func, '__name__', 'function')

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except Exception as e:
                    if retryable_exceptions and not isinstance(e, retryable_exceptions):
                        logger.error(
                            f"Non-retryable exception in {func_name}: {type(e).__name__}: {e}"
                        )
                        raise

                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = min(base_delay * (exponential_base ** attempt), max_delay)

                    # +/-25% jitter
                    if jitter:
                        jitter_amount = delay * 0.25
                        delay = delay + random.uniform(-jitter_amount, jitter_amount)
                        delay = max(0.1, delay)

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries} failed for {func_name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        on_retry(attempt + 1, e, delay)

                    time.sleep(delay)

            raise RuntimeError(f"Unexpected error in retry logic for {func_name}")

        return wrapper
    return decorator


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient

    Checks for connection loss, timeouts, and deadlocks by exception type
    name and message, so no driver module has to be imported.

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable, False otherwise
    """
    exception_str = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    retryable_patterns = [
        "connection",
        "timeout",
        "deadlock",
        "lock wait timeout",
        "lost connection",
        "server has gone away",
        "can't connect",
        "unable to connect",
        "connection refused",
        "connection reset",
        "broken pipe",
        "network error",
        "communication link failure",
        "connection closed",
        "connection terminated",
    ]

    for pattern in retryable_patterns:
        if pattern in exception_str or pattern in exception_type:
            return True

    retryable_exception_names = [
        "connectionerror",
        "timeouterror",
        "operationalerror",
        "interfaceerror",
    ]

    return exception_type in retryable_exception_names
