"""
Retry with exponential backoff for provider page fetches.
"""

from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bridge_wrapped.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Request failed, retrying",
        attempt=retry_state.attempt_number,
        sleep=round(retry_state.next_action.sleep, 2) if retry_state.next_action else 0,
        error=str(exc),
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 8.0,
) -> T:
    """
    Await ``operation`` until it succeeds or attempts run out.

    Delay before attempt n+1 is ``base_delay * 2**(n-1)``, capped at
    ``max_delay``. The last underlying exception is re-raised.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Total attempts including the first one
        base_delay: Delay in seconds after the first failure
        max_delay: Upper bound on a single delay

    Returns:
        Whatever ``operation`` returns
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=0, max=max_delay),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_retry,
        reraise=True,
    )
    # Await inside the attempt so a plain callable returning a coroutine works too
    async for attempt in retrying:
        with attempt:
            return await operation()
