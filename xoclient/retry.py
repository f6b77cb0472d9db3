# xoclient/retry.py
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from tenacity import RetryCallState, Retrying, before_nothing, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from .errors import XOError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryMode(str, Enum):
    NONE = "none"
    BACKOFF = "backoff"


@dataclass(frozen=True)
class BackoffPolicy:
    base: float = 0.5
    factor: float = 2.0
    jitter: float = 0.2
    cap: float = 30.0

    def delay(self, attempt: int, rng: random.Random) -> float:
        raw = min(self.cap, self.base * (self.factor ** attempt))
        spread = raw * self.jitter
        return min(self.cap, max(0.0, raw + rng.uniform(-spread, spread)))


class wait_budgeted_backoff(wait_base):
    """Jittered exponential wait, never longer than what is left of the retry budget."""

    def __init__(self, policy: BackoffPolicy, rng: random.Random, budget_left: Callable[[], float]):
        self.policy = policy
        self.rng = rng
        self.budget_left = budget_left

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self.policy.delay(retry_state.attempt_number - 1, self.rng)
        return max(0.0, min(delay, self.budget_left()))


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, HTTP 5xx and 429 are retried; auth, decode, validation and other 4xx are not."""
    return isinstance(exc, XOError) and exc.is_retryable


class Retrier:
    """
    Runs an operation under the configured retry mode, on top of tenacity.

    In "none" mode the first error is raised as is. In "backoff" mode retryable
    errors are retried with exponential backoff until ``max_time`` seconds have
    been spent; each sleep is clipped to the budget left, so the total time
    never exceeds max_time plus the duration of the last attempt.
    """

    def __init__(self, mode: RetryMode = RetryMode.NONE, max_time: float = 300.0,
                 policy: Optional[BackoffPolicy] = None,
                 sleep: Optional[Callable[[float], None]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 rng: Optional[random.Random] = None):
        self.mode = RetryMode(mode)
        self.max_time = max_time
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    def call(self, fn: Callable[[], T], *, scope=None,
             before_attempt: Optional[Callable[[], None]] = None,
             description: str = "operation") -> T:
        """
        Run ``fn``. ``before_attempt`` (a reconnect, typically) runs ahead of every
        attempt and its failures are retried like the attempt's own.
        """
        def attempt():
            if before_attempt is not None:
                before_attempt()
            return fn()

        return self.retrying(scope, description)(attempt)

    def retrying(self, scope=None, description: str = "operation") -> Retrying:
        before = (lambda state: scope.check()) if scope is not None else before_nothing
        if self.mode is RetryMode.NONE:
            return Retrying(stop=stop_after_attempt(1), before=before, reraise=True)

        start = self._clock()

        def budget_left() -> float:
            return self.max_time - (self._clock() - start)

        def log_retry(state: RetryCallState):
            logger.warning("%s failed (attempt %d), retrying in %.2fs: %s",
                           description, state.attempt_number, state.next_action.sleep, state.outcome.exception())

        def give_up(state: RetryCallState):
            logger.warning("%s failed after %d attempts, retry budget exhausted: %s",
                           description, state.attempt_number, state.outcome.exception())
            return state.outcome.result()

        return Retrying(
            stop=lambda state: budget_left() <= 0,
            wait=wait_budgeted_backoff(self.policy, self._rng, budget_left),
            retry=retry_if_exception(is_retryable),
            before=before,
            before_sleep=log_retry,
            sleep=self._sleeper(scope),
            retry_error_callback=give_up,
            reraise=True,
        )

    def _sleeper(self, scope) -> Callable[[float], None]:
        # a cancelled scope wakes the sleep early; the next attempt's scope check raises
        if self._sleep is not None:
            return self._sleep
        if scope is not None:
            return scope.sleep
        return time.sleep
