"""
TradeDesk - Retry With Backoff

Exponential backoff around one fallible awaitable, built on tenacity.
Backoff starts at ``initial_backoff``, doubles after every failed attempt
and is capped at ``max_backoff``. Waits use ``asyncio.sleep``, so
cancelling the calling task aborts the retry loop immediately.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tradedesk.config import RetryConfig
from tradedesk.exceptions import RetryExhaustedError
from tradedesk.logging import get_logger

logger = get_logger(__name__, component="retry")

T = TypeVar("T")


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    next_wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "retry_attempt_failed",
        attempt=retry_state.attempt_number,
        next_wait=round(next_wait, 3),
        error=str(exc),
    )


async def with_retry(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
    **kwargs: Any,
) -> T:
    """
    Call ``fn(*args, **kwargs)`` until it succeeds or attempts run out.

    Args:
        fn: Coroutine function to call
        config: Attempt count and backoff bounds (defaults to RetryConfig())
        retry_on: Exception types that trigger another attempt
        give_up_on: Exception types that propagate at once even when they
            match ``retry_on``

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: Every attempt failed; chained to the last error
    """
    config = config or RetryConfig()
    attempts = config.max_retries + 1

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(
            multiplier=config.initial_backoff,
            min=0,
            max=config.max_backoff,
        ),
        retry=retry_if_exception_type(retry_on) & retry_if_not_exception_type(give_up_on),
        before_sleep=_log_failed_attempt,
        reraise=False,
    )

    try:
        return await retrying(fn, *args, **kwargs)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        logger.error(
            "retry_exhausted",
            attempts=exc.last_attempt.attempt_number,
            error=str(last_error),
        )
        raise RetryExhaustedError(exc.last_attempt.attempt_number, last_error) from last_error
