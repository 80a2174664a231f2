"""
Retry-with-backoff combinator.

One policy shared by item generation and ingredient-level provider calls:
retry transport and parse failures with exponential backoff plus jitter.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from menugen.config.loader import RetryConfig

from .errors import ParseError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """Value returned by the operation and the number of calls it took."""
    value: T
    attempts: int


class RetryExhausted(Exception):
    """Raised when every allowed attempt failed; wraps the last error."""

    def __init__(self, last_error: Exception, attempts: int):
        super().__init__(f"{last_error} (after {attempts} attempts)")
        self.last_error = last_error
        self.attempts = attempts


def is_retryable(error: BaseException) -> bool:
    """Transport failures (unless flagged permanent) and parse failures retry."""
    if isinstance(error, ProviderError):
        return error.retryable
    return isinstance(error, ParseError)


def backoff_wait(policy: RetryConfig):
    """Doubling wait from the base delay, capped at the max delay, plus jitter up to the base delay."""
    return (
        wait_exponential(multiplier=policy.base_delay_seconds, max=policy.max_delay_seconds)
        + wait_random(0, policy.base_delay_seconds)
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryConfig,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Run `operation` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Max retries and backoff bounds
        label: Name used in retry log messages

    Returns:
        RetryOutcome with the operation's value and attempt count

    Raises:
        RetryExhausted: If every attempt failed with a retryable error
        Exception: Non-retryable errors propagate unchanged on first failure
    """
    def _log_retry(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s failed on attempt %s/%s, retrying: %s",
            label, state.attempt_number, policy.max_attempts, error,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=backoff_wait(policy),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )

    attempts = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                value = await operation()
    except (ProviderError, ParseError) as e:
        if not is_retryable(e):
            raise
        logger.error("%s gave up after %s attempts: %s", label, attempts, e)
        raise RetryExhausted(e, attempts) from e

    return RetryOutcome(value=value, attempts=attempts)
