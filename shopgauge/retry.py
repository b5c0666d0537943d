"""Exponential backoff for transient API failures.

Retries only the exception types the caller names (rate limiting by
default). Anything else propagates on the first attempt.
"""

import logging
import time
from typing import Callable, List, Tuple, Type, TypeVar

from shopgauge.clients.errors import RateLimitedError
from shopgauge.config import RetrySettings, get_retry_settings
from shopgauge.logging_utils import log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        last_error: The error raised by the final attempt.
        history: Errors from every failed attempt.
    """

    def __init__(self, attempts: int, last_error: Exception, history: List[Exception]) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(
            f"Request failed after {attempts} attempt(s). Last error: {last_error}"
        )


def backoff_delays(
    max_retries: int,
    backoff_initial_seconds: float,
    backoff_multiplier: float,
) -> List[float]:
    """Return the wait before each retry, e.g. ``[1.0, 2.0, 4.0]``."""
    return [backoff_initial_seconds * (backoff_multiplier**attempt) for attempt in range(max_retries)]


def retry_with_backoff(
    call: Callable[[], T],
    *,
    max_retries: int = 3,
    backoff_initial_seconds: float = 1.0,
    backoff_multiplier: float = 2.0,
    retry_on: Tuple[Type[Exception], ...] = (RateLimitedError,),
    sleep: Callable[[float], None] = time.sleep,
    label: str = "api_call",
) -> T:
    """Run ``call`` and retry it with exponential backoff.

    Args:
        call: Zero-argument callable performing one request.
        max_retries: Maximum number of *additional* attempts after the
            first failure. Total attempts = 1 + max_retries.
        backoff_initial_seconds: Wait before the first retry.
        backoff_multiplier: Growth factor applied to each later wait.
        retry_on: Exception types that trigger a retry.
        sleep: Injected for tests.
        label: Name used in log lines.

    Returns:
        Whatever ``call`` returns on its first successful attempt.

    Raises:
        RetryExhaustedError: If every attempt raised a retryable error.
        Exception: Any non-retryable error, unchanged, on first occurrence.
    """
    errors: List[Exception] = []
    total_attempts = 1 + max(0, max_retries)
    delays = backoff_delays(total_attempts - 1, backoff_initial_seconds, backoff_multiplier)

    for attempt in range(1, total_attempts + 1):
        try:
            result = call()
        except retry_on as exc:
            errors.append(exc)
            if attempt >= total_attempts:
                break
            wait_seconds = delays[attempt - 1]
            log_event(
                logger,
                logging.WARNING,
                "retry_scheduled",
                label=label,
                attempt=attempt,
                total_attempts=total_attempts,
                wait_seconds=round(wait_seconds, 3),
                error=str(exc),
            )
            sleep(wait_seconds)
            continue

        if attempt > 1:
            logger.info("%s succeeded on attempt %d/%d", label, attempt, total_attempts)
        return result

    log_event(
        logger,
        logging.ERROR,
        "retry_exhausted",
        label=label,
        attempts=total_attempts,
        error=str(errors[-1]),
    )
    raise RetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1],
        history=errors,
    ) from errors[-1]


def retry_from_settings(
    call: Callable[[], T],
    *,
    settings: RetrySettings | None = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "api_call",
) -> T:
    """Retry rate-limited calls using the configured backoff."""
    resolved = settings or get_retry_settings()
    return retry_with_backoff(
        call,
        max_retries=resolved.max_retries,
        backoff_initial_seconds=resolved.backoff_initial_seconds,
        backoff_multiplier=resolved.backoff_multiplier,
        sleep=sleep,
        label=label,
    )
