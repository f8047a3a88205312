"""
Tests for fm_data.core.context module.
"""

import threading
import time

from fm_data.core.context import OperationContext
from fm_data.core.errors import DeadlineExceededError, OperationCancelledError


class TestOperationContext:

    def test_background_never_done(self):
        ctx = OperationContext.background()
        assert not ctx.done()
        assert ctx.remaining() is None
        assert ctx.bound_timeout(30.0) == 30.0

    def test_cancel(self):
        ctx = OperationContext()
        ctx.cancel()
        assert ctx.cancelled
        assert ctx.done()
        assert isinstance(ctx.error(), OperationCancelledError)
        assert not isinstance(ctx.error(), DeadlineExceededError)

    def test_deadline(self):
        ctx = OperationContext(timeout=0)
        assert ctx.expired()
        assert isinstance(ctx.error(), DeadlineExceededError)

    def test_bound_timeout_clamps(self):
        ctx = OperationContext(timeout=2.0)
        assert ctx.bound_timeout(30.0) <= 2.0
        assert ctx.bound_timeout(0.5) == 0.5
        assert ctx.bound_timeout(None) <= 2.0

    def test_wait_full_delay(self):
        ctx = OperationContext()
        assert ctx.wait(0.01) is False

    def test_wait_returns_early_on_cancel(self):
        ctx = OperationContext()
        threading.Timer(0.05, ctx.cancel).start()
        t0 = time.monotonic()
        assert ctx.wait(5.0) is True
        assert time.monotonic() - t0 < 2.0

    def test_wait_bounded_by_deadline(self):
        ctx = OperationContext(timeout=0.05)
        t0 = time.monotonic()
        assert ctx.wait(5.0) is True
        assert time.monotonic() - t0 < 2.0
