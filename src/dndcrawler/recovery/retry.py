"""
Named retry policies.

Page-to-page navigation in the catalog listing uses ``Unbounded``: the listing
cannot be partially walked, so it keeps trying until navigation succeeds.
Detail pages use ``BoundedWithFailure``: after ``attempts`` tries the last
error is raised to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_fixed,
    wait_none,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], None]


def _before_sleep(on_retry: Optional[OnRetry]) -> Optional[Callable[[RetryCallState], None]]:
    if on_retry is None:
        return None

    def hook(state: RetryCallState) -> None:
        assert state.outcome is not None
        error = state.outcome.exception()
        assert error is not None
        on_retry(state.attempt_number, error)

    return hook


@dataclass(frozen=True)
class _RetryPolicy(ABC):
    wait_seconds: float = field(default=0.0, kw_only=True)

    @abstractmethod
    def _stop(self) -> stop_base:
        raise NotImplementedError

    def _wait(self) -> wait_base:
        return wait_fixed(self.wait_seconds) if self.wait_seconds > 0 else wait_none()

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        on_retry: Optional[OnRetry] = None,
        **kwargs: Any,
    ) -> T:
        """Await ``fn(*args, **kwargs)`` until it succeeds or the policy stops.

        ``on_retry(attempt_number, error)`` runs after every failed attempt that
        will be retried. Cancellation is never retried.
        """
        retrying = AsyncRetrying(
            stop=self._stop(),
            wait=self._wait(),
            retry=retry_if_exception_type(Exception),
            before_sleep=_before_sleep(on_retry),
            reraise=True,
        )
        return await retrying(fn, *args, **kwargs)


@dataclass(frozen=True)
class Unbounded(_RetryPolicy):
    """Retry forever."""

    def _stop(self) -> stop_base:
        return stop_never


@dataclass(frozen=True)
class BoundedWithFailure(_RetryPolicy):
    """Try at most ``attempts`` times, then re-raise the last error."""

    attempts: int = 1

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def _stop(self) -> stop_base:
        return stop_after_attempt(self.attempts)
