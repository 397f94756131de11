"""
Retry and deadline helpers for async operations.

retry_with_backoff re-runs a failing operation with exponential backoff,
with_timeout bounds the total time spent waiting for it.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, TypeVar

from core.errors import OperationTimeoutError, matches_retryable_marker
from core.models import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_RETRY_CONFIG = RetryConfig()

# Operations abandoned by with_timeout; referenced until they settle
_abandoned: Set[asyncio.Future] = set()


def calculate_backoff_delay(attempt: int, config: RetryConfig = DEFAULT_RETRY_CONFIG) -> float:
    """
    Calculate delay before the next attempt.

    Args:
        attempt: Attempt that just failed (1-based)
        config: Retry configuration

    Returns:
        Delay in milliseconds, capped at config.max_delay
    """
    delay = config.base_delay * (config.backoff_multiplier ** (attempt - 1))
    return min(delay, config.max_delay)


def is_retryable_error(error: Any, config: RetryConfig = DEFAULT_RETRY_CONFIG) -> bool:
    """
    Check if an error is retryable.

    An explicit ``retryable`` attribute wins. Otherwise the error's code and
    message are matched against the configured markers.

    Args:
        error: Error to check
        config: Retry configuration

    Returns:
        True if error is retryable
    """
    if error is None:
        return False

    retryable = getattr(error, 'retryable', None)
    if retryable is True:
        return True
    if retryable is False:
        return False

    code = getattr(error, 'code', None)
    message = getattr(error, 'message', None) or str(error)
    return matches_retryable_marker(
        code if isinstance(code, str) else None,
        message,
        config.retryable_errors
    )


async def sleep(ms: float) -> None:
    """Sleep for the given number of milliseconds."""
    await asyncio.sleep(ms / 1000)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    should_continue: Optional[Callable[[], bool]] = None
) -> T:
    """
    Run an async operation, retrying retryable failures with exponential backoff.

    Args:
        operation: Zero-argument callable returning an awaitable
        config: Retry configuration (default policy when None)
        on_retry: Called with (attempt, error) before each wait
        should_continue: Checked before each retry; returning False stops the
            loop and re-raises the last error

    Returns:
        Result of the first successful attempt

    Raises:
        The last error, unchanged, once attempts are exhausted, the error
        is not retryable or should_continue returns False
    """
    config = config or DEFAULT_RETRY_CONFIG

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if attempt >= config.max_attempts or not is_retryable_error(error, config):
                raise
            if should_continue and not should_continue():
                raise

            delay = calculate_backoff_delay(attempt, config)
            logger.debug(f"Attempt {attempt}/{config.max_attempts} failed, retrying in {delay}ms: {error}")

            if on_retry:
                on_retry(attempt, error)

            await sleep(delay)
            if should_continue and not should_continue():
                raise
            attempt += 1


def _discard_outcome(future: asyncio.Future) -> None:
    _abandoned.discard(future)
    if not future.cancelled() and future.exception() is not None:
        logger.debug(f"Abandoned operation finished with error: {future.exception()}")


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_ms: float,
    message: str = 'Operation timed out'
) -> T:
    """
    Wait for an awaitable with a deadline.

    On expiry the operation is abandoned, not cancelled: it keeps running and
    whatever it eventually produces is discarded.

    Args:
        awaitable: Operation to wait for
        timeout_ms: Deadline in milliseconds
        message: Message of the timeout error

    Returns:
        Result of the operation

    Raises:
        OperationTimeoutError: If the deadline passes first (code TIMEOUT, retryable)
    """
    future = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({future}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        future.cancel()
        raise

    if future in done:
        return future.result()

    _abandoned.add(future)
    future.add_done_callback(_discard_outcome)
    raise OperationTimeoutError(message)
