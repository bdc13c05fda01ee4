"""Unit tests for the named retry policies."""

import asyncio

import pytest

from dndcrawler.recovery import BoundedWithFailure, Unbounded
from dndcrawler.recovery.retry import _RetryPolicy


class Flaky:
    """Awaitable that fails ``failures`` times before returning ``value``."""

    def __init__(self, failures, value="ok", error=RuntimeError):
        self.failures = failures
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return self.value


class TestBoundedWithFailure:
    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        fn = Flaky(0)
        assert await BoundedWithFailure(3).call(fn) == "ok"
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_success_after_failures(self):
        fn = Flaky(2)
        assert await BoundedWithFailure(3).call(fn) == "ok"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_raises_last_error_after_exact_attempts(self):
        fn = Flaky(10)
        with pytest.raises(RuntimeError, match="failure 4"):
            await BoundedWithFailure(4).call(fn)
        assert fn.calls == 4

    @pytest.mark.asyncio
    async def test_on_retry_sees_every_retried_failure(self):
        seen = []
        fn = Flaky(5)
        with pytest.raises(RuntimeError):
            await BoundedWithFailure(3).call(fn, on_retry=lambda attempt, error: seen.append((attempt, str(error))))
        # The final failure is raised, not retried.
        assert seen == [(1, "failure 1"), (2, "failure 2")]

    @pytest.mark.asyncio
    async def test_arguments_are_passed_through(self):
        async def add(a, b=0):
            return a + b

        assert await BoundedWithFailure(1).call(add, 2, b=3) == 5

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self):
        fn = Flaky(5, error=asyncio.CancelledError)
        with pytest.raises(asyncio.CancelledError):
            await BoundedWithFailure(5).call(fn)
        assert fn.calls == 1

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            BoundedWithFailure(0)


class TestUnbounded:
    @pytest.mark.asyncio
    async def test_keeps_trying_until_success(self):
        fn = Flaky(25)
        retries = []
        assert await Unbounded().call(fn, on_retry=lambda attempt, error: retries.append(attempt)) == "ok"
        assert fn.calls == 26
        assert retries == list(range(1, 26))


class TestRetryPolicyBase:
    def test_base_policy_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            _RetryPolicy()
