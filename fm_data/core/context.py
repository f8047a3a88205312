"""
fm_data.core.context - Cancellation and deadlines
==================================================

An ``OperationContext`` travels with one logical operation (session
create, request, session release). It can be cancelled from any thread
and may carry a deadline; every blocking point in the client checks it.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from fm_data.core.errors import DeadlineExceededError, OperationCancelledError


class OperationContext:
    """
    Cancellation handle with an optional deadline.

    Parameters
    ----------
    timeout : float, optional
        Seconds from now after which the context counts as done

    Examples
    --------
    >>> ctx = OperationContext(timeout=10.0)
    >>> records.create({"Name": "Acme"}, ctx=ctx)

    >>> # from another thread
    >>> ctx.cancel()
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + max(0.0, float(timeout))

    @classmethod
    def background(cls) -> "OperationContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic deadline, or None."""
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or None."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def error(self) -> OperationCancelledError:
        """The exception describing why this context is done."""
        if self.cancelled:
            return OperationCancelledError()
        return DeadlineExceededError()

    def raise_if_done(self) -> None:
        if self.done():
            raise self.error()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``, waking early on cancel.

        Returns True when the context finished before or during the wait,
        False when the full delay elapsed normally.
        """
        if self.done():
            return True
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            self._event.wait(remaining)
            return True
        return self._event.wait(max(0.0, seconds))

    def bound_timeout(self, timeout: Optional[float]) -> Optional[float]:
        """Clamp a transport timeout so it never outlives the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def __repr__(self) -> str:
        return (
            f"OperationContext(cancelled={self.cancelled}, "
            f"remaining={self.remaining()})"
        )
