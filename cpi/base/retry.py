"""
Retry utilities with configurable exponential backoff.

Used by the provider client to absorb throttling and connectivity
failures.  The orchestrator in :mod:`cpi.cloud` never retries; by the
time an error reaches it, the provider client has given up.
"""

from __future__ import annotations

import time
import logging
from functools import wraps
from typing import Callable, Any

from cpi.base.exceptions import ProviderTransientError

logger = logging.getLogger("cpi")

# Default set of exception types considered transient / retryable.
_DEFAULT_RETRYABLE: tuple[type[BaseException], ...] = (
    ProviderTransientError,
    ConnectionError,
    TimeoutError,
)


def retry(
    max_attempts: int | Callable[[Any], int] = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: tuple[type[BaseException], ...] | None = None,
) -> Callable:
    """Decorator: retry a function on transient exceptions with exponential backoff.

    Args:
        max_attempts: Maximum number of total attempts (including the first).
            May be a callable receiving the bound ``self`` so a service can
            take the limit from its own config.
        base_delay: Initial delay in seconds before the first retry.
        max_delay: Cap on the delay between retries.
        backoff_factor: Multiplier applied to the delay after each retry.
        retryable_exceptions: Tuple of exception types that trigger a retry.
            Defaults to ProviderTransientError, ConnectionError, TimeoutError.

    Returns:
        Decorated function that retries on transient failures.
    """
    if retryable_exceptions is None:
        retryable_exceptions = _DEFAULT_RETRYABLE

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts = max_attempts(args[0]) if callable(max_attempts) else max_attempts
            delay = base_delay
            last_exc: BaseException | None = None
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable_exceptions as exc:
                    last_exc = exc
                    if attempt == attempts:
                        logger.error(
                            "All %d attempts failed for %s: %s",
                            attempts,
                            fn.__qualname__,
                            exc,
                        )
                        raise
                    logger.warning(
                        "Attempt %d/%d for %s failed (%s), retrying in %.1fs…",
                        attempt,
                        attempts,
                        fn.__qualname__,
                        exc,
                        delay,
                    )
                    time.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator
