"""
fm_data.core.retry - Bounded retry with exponential backoff
============================================================

``execute_with_retry`` wraps any callable that raises classified errors:

- the delay before retry ``n`` (0-based) is ``min(min_delay * 2**n, max_delay)``
- optional jitter adds ``[0, 25%)`` of that delay, never subtracts
- non-retryable errors surface on the first occurrence
- the context is checked before every attempt and observed while sleeping
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Callable, FrozenSet, Optional, TypeVar

from fm_data.core.context import OperationContext
from fm_data.core.errors import RETRYABLE_HTTP_STATUSES, describe, is_retryable

logger = logging.getLogger("fm_data.retry")

T = TypeVar("T")

JITTER_FRACTION = 0.25

RetryCallback = Callable[[int, BaseException], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for one client.

    Parameters
    ----------
    max_attempts : int
        Retries after the first attempt (0 = single attempt)
    min_delay : float
        Base delay in seconds before the first retry
    max_delay : float
        Cap for any computed delay, in seconds
    jitter : bool
        Add up to 25% random extra delay
    retryable_statuses : frozenset of int
        HTTP statuses that make a FileMakerError retryable
    on_retry : callable, optional
        ``on_retry(attempt_number, error)`` called before each wait;
        ``attempt_number`` is 1 for the first retry. Exceptions it raises
        are logged and ignored.
    """
    max_attempts: int = 3
    min_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True
    retryable_statuses: FrozenSet[int] = field(default=RETRYABLE_HTTP_STATUSES)
    on_retry: Optional[RetryCallback] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if int(self.max_attempts) < 0:
            raise ValueError("max_attempts must be >= 0")
        if float(self.min_delay) < 0 or float(self.max_delay) < 0:
            raise ValueError("retry delays must be >= 0")
        if float(self.min_delay) > float(self.max_delay):
            raise ValueError("min_delay must not exceed max_delay")
        # frozen: normalise via object.__setattr__
        object.__setattr__(self, "max_attempts", int(self.max_attempts))
        object.__setattr__(self, "min_delay", float(self.min_delay))
        object.__setattr__(self, "max_delay", float(self.max_delay))
        object.__setattr__(self, "retryable_statuses", frozenset(self.retryable_statuses))

    @classmethod
    def disabled(cls) -> "RetryPolicy":
        """A policy that makes exactly one attempt."""
        return cls(max_attempts=0)

    def with_overrides(self, **changes) -> "RetryPolicy":
        return replace(self, **changes)

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay before retry ``attempt`` (0-based)."""
        if self.min_delay == 0:
            return 0.0
        # avoid float overflow for large attempt numbers
        if attempt >= 64:
            return self.max_delay
        return min(self.min_delay * (2 ** attempt), self.max_delay)

    def compute_delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Delay before retry ``attempt`` including jitter when enabled."""
        delay = self.base_delay(attempt)
        if self.jitter and delay > 0:
            r = (rng or random).random()
            delay += r * delay * JITTER_FRACTION
        return delay

    def should_retry(self, err: Optional[BaseException]) -> bool:
        return is_retryable(err, self.retryable_statuses)


DEFAULT_RETRY_POLICY = RetryPolicy()


def _safe_invoke_on_retry(
    on_retry: RetryCallback,
    attempt: int,
    err: BaseException,
    operation: str,
) -> None:
    try:
        on_retry(attempt, err)
    except Exception as cb_err:
        logger.warning(
            "Error in on_retry callback for %s: %s",
            operation,
            str(cb_err)[:100],
            extra={"operation": operation, "callback_error": str(cb_err)[:100]},
        )


def execute_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ctx: Optional[OperationContext] = None,
    *,
    name: str = "request",
    rng: Optional[random.Random] = None,
) -> T:
    """
    Run ``operation`` until it succeeds, fails permanently, or the budget
    is spent.

    Parameters
    ----------
    operation : callable
        Zero-argument callable; returns a value on success, raises on failure
    policy : RetryPolicy
        Attempt budget, delays and classification
    ctx : OperationContext, optional
        Cancellation handle, checked before each attempt and during waits
    name : str
        Operation label used in log records
    rng : random.Random, optional
        Source for jitter

    Returns
    -------
    Any
        Whatever ``operation`` returned on its successful attempt

    Raises
    ------
    OperationCancelledError
        When ``ctx`` is done before an attempt or during a backoff wait
    Exception
        The last error raised by ``operation`` when it is not retryable or
        the budget is exhausted, unchanged
    """
    ctx = ctx or OperationContext.background()

    for attempt in range(policy.max_attempts + 1):
        ctx.raise_if_done()

        try:
            return operation()
        except Exception as err:
            if not policy.should_retry(err):
                raise

            if attempt >= policy.max_attempts:
                logger.error(
                    "Max retries exhausted for %s: %s",
                    name,
                    str(err)[:200],
                    extra={"operation": name, "max_attempts": policy.max_attempts, **describe(err)},
                )
                raise

            delay = policy.compute_delay(attempt, rng)
            logger.warning(
                "Retryable error for %s, will retry in %.2fs",
                name,
                delay,
                extra={
                    "operation": name,
                    "attempt": attempt + 1,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": round(delay, 3),
                    **describe(err),
                },
            )

            if policy.on_retry is not None:
                _safe_invoke_on_retry(policy.on_retry, attempt + 1, err, name)

            if ctx.wait(delay):
                raise ctx.error() from err

    # unreachable: the loop either returns or raises
    raise AssertionError("retry loop exited without result")
