"""Retry with exponential backoff for provider calls.

Errors are classified before every retry:
- Transient: network failures, timeouts, rate limiting (429), server errors (5xx)
- Fatal: bad request (400), authentication (401), forbidden (403), not found (404)
- Anything unclassified is fatal

The delay before attempt n (n >= 2) is initial_delay * backoff_multiplier ** (n - 2).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import litellm

from docscribe.exceptions import GenerationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
FATAL_STATUS_CODES = frozenset({400, 401, 403, 404})

TRANSIENT_MESSAGES = (
    "rate limit",
    "too many requests",
    "internal server error",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
)
FATAL_MESSAGES = ("unauthorized", "bad request", "forbidden", "not found")

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.Timeout,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings.

    Attributes:
        max_attempts: Attempts including the first one
        initial_delay: Seconds to wait before the second attempt
        backoff_multiplier: Growth factor of the delay
    """

    max_attempts: int = 5
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1. Got: {self.max_attempts}")
        if self.initial_delay < 0:
            raise ValueError(f"initial_delay cannot be negative. Got: {self.initial_delay}")
        if self.backoff_multiplier < 1:
            raise ValueError(
                f"backoff_multiplier must be at least 1. Got: {self.backoff_multiplier}"
            )

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given attempt (1-based).

        Args:
            attempt: Attempt number

        Returns:
            0 for the first attempt, the exponential delay otherwise
        """
        if attempt < 2:
            return 0.0
        return self.initial_delay * self.backoff_multiplier ** (attempt - 2)


def _status_code(exc: BaseException) -> int | None:
    code = getattr(exc, "status_code", None)
    if isinstance(code, int):
        return code
    return None


def is_fatal_error(exc: BaseException) -> bool:
    """Check whether an error must never be retried."""
    code = _status_code(exc)
    if code is not None:
        return code in FATAL_STATUS_CODES
    message = str(exc).lower()
    return any(marker in message for marker in FATAL_MESSAGES) or "401" in message


def is_transient_error(exc: BaseException) -> bool:
    """Check whether an error is worth retrying.

    Args:
        exc: Raised exception

    Returns:
        True for network, timeout, rate-limit and server-side failures
    """
    if isinstance(exc, GenerationCancelledError):
        return False

    code = _status_code(exc)
    if code is not None:
        return code in TRANSIENT_STATUS_CODES

    if isinstance(exc, TRANSIENT_EXCEPTIONS) or isinstance(exc.__cause__, TRANSIENT_EXCEPTIONS):
        return True

    if is_fatal_error(exc):
        return False

    message = str(exc).lower()
    if any(marker in message for marker in TRANSIENT_MESSAGES):
        return True
    return any(str(code) in message for code in TRANSIENT_STATUS_CODES)


async def _wait(
    delay: float,
    cancel_event: asyncio.Event | None,
    sleep: Callable[[float], Awaitable[object]],
) -> None:
    """Sleep for the backoff delay, returning early if cancelled."""
    if cancel_event is None:
        await sleep(delay)
        return

    sleeper = asyncio.ensure_future(sleep(delay))
    canceller = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        sleeper.cancel()
        canceller.cancel()

    if cancel_event.is_set():
        raise GenerationCancelledError("Cancelled during retry backoff")


async def _run_attempt(
    operation: Callable[[], Awaitable[T]],
    cancel_event: asyncio.Event | None,
) -> T:
    """Await one attempt, abandoning it as soon as cancellation is requested."""
    if cancel_event is None:
        return await operation()

    call = asyncio.ensure_future(operation())
    canceller = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({call, canceller}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        raise
    finally:
        canceller.cancel()

    if call.done():
        return call.result()

    call.cancel()
    raise GenerationCancelledError("Cancelled while waiting for the provider")


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    cancel_event: asyncio.Event | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run an async operation, retrying transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Retry settings (defaults to 5 attempts, 1s, x2)
        cancel_event: Set to abort waiting and in-flight attempts
        sleep: Awaitable sleep used for backoff
        description: Label used in log messages

    Returns:
        The operation's result

    Raises:
        GenerationCancelledError: If cancel_event is set before or during an attempt
        Exception: The last error raised by the operation, unwrapped
    """
    policy = policy or RetryPolicy()

    for attempt in range(1, policy.max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError(f"Cancelled before attempt {attempt} of {description}")

        try:
            return await _run_attempt(operation, cancel_event)
        except GenerationCancelledError:
            raise
        except Exception as e:
            if not is_transient_error(e):
                logger.debug("%s failed with non-retryable error: %s", description, e)
                raise
            if attempt == policy.max_attempts:
                logger.warning(
                    "%s failed after %d attempts: %s", description, policy.max_attempts, e
                )
                raise

            delay = policy.delay_before(attempt + 1)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                description,
                attempt,
                policy.max_attempts,
                delay,
                e,
            )
            await _wait(delay, cancel_event, sleep)

    # max_attempts >= 1 guarantees the loop returns or raises
    raise AssertionError("unreachable")
