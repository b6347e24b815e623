"""
Retry Logic with Exponential Backoff

Provides retry decorators and utilities for handling transient failures of
the KEGG and MGnify web services.
"""

import logging
import time
from typing import Callable, Optional, Type, Tuple, Any
from functools import wraps

from tenacity import (
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
    Retrying,
    RetryCallState,
)

from .exceptions import (
    DatabaseConnectionError,
    DatabaseTimeoutError,
    DatabaseUnavailableError,
    ServiceError,
    is_transient_error,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Retry Configuration
# =============================================================================

class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts (default: 3)
        initial_wait: Initial wait time in seconds (default: 1)
        max_wait: Maximum wait time in seconds (default: 10)
        multiplier: Exponential backoff multiplier (default: 2)
        retry_on: Tuple of exception types to retry on
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_wait: float = 1.0,
        max_wait: float = 10.0,
        multiplier: float = 2.0,
        retry_on: Optional[Tuple[Type[Exception], ...]] = None
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum attempts (1-10)
            initial_wait: Initial wait in seconds (0.1-5.0)
            max_wait: Maximum wait in seconds (1.0-60.0)
            multiplier: Backoff multiplier (1.0-5.0)
            retry_on: Exception types to retry (defaults to transient errors)
        """
        self.max_attempts = max(1, min(10, max_attempts))
        self.initial_wait = max(0.1, min(5.0, initial_wait))
        self.max_wait = max(1.0, min(60.0, max_wait))
        self.multiplier = max(1.0, min(5.0, multiplier))

        self.retry_on = retry_on or (
            DatabaseConnectionError,
            DatabaseTimeoutError,
            DatabaseUnavailableError,
            ConnectionError,
            TimeoutError,
        )

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_attempts={self.max_attempts}, initial_wait={self.initial_wait}, "
            f"max_wait={self.max_wait}, multiplier={self.multiplier})"
        )


DEFAULT_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    initial_wait=1.0,
    max_wait=10.0,
    multiplier=2.0
)

# KEGG REST throttles bursts; back off a little longer than the default
KEGG_RETRY_CONFIG = RetryConfig(
    max_attempts=4,
    initial_wait=1.0,
    max_wait=15.0,
    multiplier=2.0
)

# MGnify downloads are large; fewer attempts, longer waits
MGNIFY_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    initial_wait=2.0,
    max_wait=30.0,
    multiplier=2.0
)


# =============================================================================
# Retry Condition Helpers
# =============================================================================

def should_retry_exception(exception: Exception) -> bool:
    """
    Determine if an exception should trigger a retry.

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable
    """
    if is_transient_error(exception):
        return True

    if isinstance(exception, ServiceError):
        return exception.is_retryable()

    return False


# =============================================================================
# Retry Decorator
# =============================================================================

def _sleep(seconds: float) -> None:
    time.sleep(seconds)


def backoff_wait(config: RetryConfig) -> Callable:
    """
    Tenacity wait strategy: ``initial_wait * multiplier ** (attempt - 1)``,
    capped at ``max_wait``.

    A ``Retry-After`` carried by :class:`DatabaseUnavailableError` raises the
    wait to that value (still capped at ``max_wait``).
    """
    exponential = wait_exponential(
        multiplier=config.initial_wait,
        exp_base=config.multiplier,
        max=config.max_wait
    )

    def wait(retry_state: RetryCallState) -> float:
        delay = exponential(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, DatabaseUnavailableError) and error.retry_after:
            delay = min(max(delay, error.retry_after), config.max_wait)
        return delay

    return wait


def sync_retry_with_backoff(
    config: Optional[RetryConfig] = None,
    logger_name: Optional[str] = None
) -> Callable:
    """
    Decorator for sync functions with exponential backoff retry.

    Only errors accepted by :func:`should_retry_exception` are retried; the
    last error is re-raised once attempts run out.

    Example:
        >>> @sync_retry_with_backoff(config=KEGG_RETRY_CONFIG)
        ... def fetch_links(path: str):
        ...     return client.request(path)
    """
    cfg = config or DEFAULT_RETRY_CONFIG
    log = logging.getLogger(logger_name) if logger_name else logger

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in Retrying(
                stop=stop_after_attempt(cfg.max_attempts),
                wait=backoff_wait(cfg),
                retry=retry_if_exception(should_retry_exception),
                before_sleep=before_sleep_log(log, logging.WARNING),
                sleep=_sleep,
                reraise=True
            ):
                with attempt:
                    result = func(*args, **kwargs)

                    if attempt.retry_state.attempt_number > 1:
                        log.info(
                            f"{func.__name__} succeeded after "
                            f"{attempt.retry_state.attempt_number} attempts"
                        )

                    return result

        return wrapper
    return decorator
