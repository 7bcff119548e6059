"""Unit tests for retry classification and exponential backoff."""

import asyncio

import pytest

from docscribe.exceptions import GenerationCancelledError, ProviderError
from docscribe.llm.retry import (
    RetryPolicy,
    execute_with_retry,
    is_fatal_error,
    is_transient_error,
)


class RecordingSleep:
    """Backoff sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyOperation:
    """Raises the scripted errors in order, then returns "ok"."""

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def status_error(code: int) -> ProviderError:
    return ProviderError(f"HTTP {code}", provider="fake", status_code=code)


class TestRetryPolicy:
    """Tests for RetryPolicy settings."""

    def test_defaults(self) -> None:
        """Test default attempts and delays."""
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert policy.initial_delay == 1.0
        assert policy.backoff_multiplier == 2.0

    def test_delay_sequence(self) -> None:
        """Test delays double from the initial delay."""
        policy = RetryPolicy()

        assert policy.delay_before(1) == 0.0
        assert [policy.delay_before(n) for n in range(2, 6)] == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"initial_delay": -1.0},
            {"backoff_multiplier": 0.5},
        ],
    )
    def test_invalid_settings_raise(self, kwargs: dict) -> None:
        """Test invalid settings are rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestErrorClassification:
    """Tests for transient/fatal classification."""

    @pytest.mark.parametrize("code", [408, 429, 500, 502, 503, 504])
    def test_transient_status_codes(self, code: int) -> None:
        """Test rate limiting and server errors are transient."""
        assert is_transient_error(status_error(code))

    @pytest.mark.parametrize("code", [400, 401, 403, 404])
    def test_fatal_status_codes(self, code: int) -> None:
        """Test client errors are fatal."""
        error = status_error(code)

        assert not is_transient_error(error)
        assert is_fatal_error(error)

    def test_network_errors_are_transient(self) -> None:
        """Test connection failures and timeouts are transient."""
        assert is_transient_error(ConnectionError("reset"))
        assert is_transient_error(TimeoutError())
        assert is_transient_error(asyncio.TimeoutError())

    def test_wrapped_network_error_is_transient(self) -> None:
        """Test a provider error caused by a connection failure is transient."""
        try:
            try:
                raise ConnectionResetError("peer reset")
            except ConnectionResetError as e:
                raise ProviderError("call failed") from e
        except ProviderError as wrapped:
            assert is_transient_error(wrapped)

    def test_message_markers(self) -> None:
        """Test classification by message when no status code is present."""
        assert is_transient_error(ProviderError("Rate limit exceeded"))
        assert is_transient_error(Exception("upstream returned 502"))
        assert not is_transient_error(Exception("Unauthorized: invalid key"))

    def test_unclassified_error_is_not_retried(self) -> None:
        """Test unknown errors are treated as fatal."""
        assert not is_transient_error(ValueError("boom"))

    def test_cancellation_is_never_transient(self) -> None:
        """Test cancellation is not retried."""
        assert not is_transient_error(GenerationCancelledError("stop"))


class TestExecuteWithRetry:
    """Tests for execute_with_retry."""

    def test_success_first_attempt(self) -> None:
        """Test a successful operation runs once without sleeping."""
        operation = FlakyOperation([])
        sleep = RecordingSleep()

        result = asyncio.run(execute_with_retry(operation, sleep=sleep))

        assert result == "ok"
        assert operation.calls == 1
        assert sleep.delays == []

    def test_transient_then_success(self) -> None:
        """Test two transient failures are retried before succeeding."""
        operation = FlakyOperation([status_error(503), status_error(429)])
        sleep = RecordingSleep()

        result = asyncio.run(execute_with_retry(operation, sleep=sleep))

        assert result == "ok"
        assert operation.calls == 3
        assert sleep.delays == [1.0, 2.0]

    def test_exhausted_retries_reraise_last_error(self) -> None:
        """Test the original error surfaces after max_attempts."""
        errors = [status_error(500) for _ in range(5)]
        operation = FlakyOperation(errors[:])
        sleep = RecordingSleep()

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(execute_with_retry(operation, RetryPolicy(max_attempts=5), sleep=sleep))

        assert exc_info.value is errors[-1]
        assert operation.calls == 5
        assert sleep.delays == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.parametrize("code", [400, 401, 403, 404])
    def test_fatal_error_not_retried(self, code: int) -> None:
        """Test fatal errors fail after exactly one attempt."""
        operation = FlakyOperation([status_error(code)])
        sleep = RecordingSleep()

        with pytest.raises(ProviderError):
            asyncio.run(execute_with_retry(operation, sleep=sleep))

        assert operation.calls == 1
        assert sleep.delays == []

    def test_custom_policy(self) -> None:
        """Test custom attempts, delay and multiplier."""
        operation = FlakyOperation([status_error(503)] * 3)
        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=3, initial_delay=0.5, backoff_multiplier=3.0)

        with pytest.raises(ProviderError):
            asyncio.run(execute_with_retry(operation, policy, sleep=sleep))

        assert operation.calls == 3
        assert sleep.delays == [0.5, 1.5]

    def test_cancelled_before_first_attempt(self) -> None:
        """Test a set cancel event prevents any attempt."""
        operation = FlakyOperation([])

        async def run() -> None:
            event = asyncio.Event()
            event.set()
            await execute_with_retry(operation, cancel_event=event)

        with pytest.raises(GenerationCancelledError):
            asyncio.run(run())

        assert operation.calls == 0

    def test_cancelled_during_backoff(self) -> None:
        """Test cancellation during a backoff wait stops further attempts."""
        operation = FlakyOperation([status_error(503)] * 5)

        async def run() -> None:
            event = asyncio.Event()

            async def cancelling_sleep(delay: float) -> None:
                event.set()
                await asyncio.Event().wait()

            await execute_with_retry(operation, cancel_event=event, sleep=cancelling_sleep)

        with pytest.raises(GenerationCancelledError):
            asyncio.run(run())

        assert operation.calls == 1

    def test_cancelled_while_call_in_flight(self) -> None:
        """Test cancellation abandons a call that has not returned."""
        started = []

        async def hanging() -> str:
            started.append(True)
            await asyncio.Event().wait()
            return "never"

        async def run() -> None:
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.01, event.set)
            await execute_with_retry(hanging, cancel_event=event)

        with pytest.raises(GenerationCancelledError):
            asyncio.run(run())

        assert started == [True]
