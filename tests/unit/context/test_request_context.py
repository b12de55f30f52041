"""Tests for RequestContext deadlines and cancellation."""

import threading

import pytest

from azure_secrets_core.context.request_context import RequestContext
from azure_secrets_core.exceptions import ContextCancelledError, DeadlineExceededError


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRequestContext:
    """Test deadline and cancellation behavior."""

    def test_background_is_live(self):
        ctx = RequestContext.background()

        assert ctx.has_deadline is False
        assert ctx.remaining() is None
        assert ctx.done() is False
        assert ctx.error() is None

    def test_with_timeout_sets_deadline(self, clock):
        ctx = RequestContext(clock=clock).with_timeout(30)

        assert ctx.deadline == 1030.0
        assert ctx.remaining() == 30.0

    def test_with_timeout_never_extends(self, clock):
        """Test a derived context keeps the parent's earlier deadline."""
        parent = RequestContext(clock=clock).with_timeout(10)
        child = parent.with_timeout(80)

        assert child.deadline == parent.deadline

    def test_with_timeout_can_tighten(self, clock):
        parent = RequestContext(clock=clock).with_timeout(80)
        child = parent.with_timeout(5)

        assert child.deadline == 1005.0

    def test_deadline_expiry(self, clock):
        ctx = RequestContext(clock=clock).with_timeout(5)
        clock.advance(5)

        assert ctx.expired() is True
        assert ctx.done() is True
        assert ctx.remaining() == 0.0
        assert isinstance(ctx.error(), DeadlineExceededError)

    def test_parent_cancellation_reaches_derived_contexts(self):
        parent = RequestContext.background()
        child = parent.with_timeout(60)
        grandchild = child.with_timeout(30)

        parent.cancel()

        assert child.cancelled is True
        assert grandchild.cancelled is True
        assert isinstance(child.error(), ContextCancelledError)

    def test_child_cancellation_does_not_reach_parent(self):
        parent = RequestContext.background()
        child = parent.with_timeout(60)
        sibling = parent.with_timeout(60)

        child.cancel()

        assert child.cancelled is True
        assert parent.cancelled is False
        assert sibling.cancelled is False
        assert parent.error() is None

    def test_derived_from_cancelled_parent_starts_cancelled(self):
        parent = RequestContext.background()
        parent.cancel()

        assert parent.with_timeout(60).done() is True

    def test_parent_cancellation_wakes_waiting_child(self):
        parent = RequestContext.background()
        child = parent.with_timeout(60)
        timer = threading.Timer(0.05, parent.cancel)
        timer.start()

        try:
            assert child.wait(30) is True
        finally:
            timer.cancel()

    def test_cancel_takes_precedence_over_deadline(self, clock):
        ctx = RequestContext(clock=clock).with_timeout(1)
        clock.advance(2)
        ctx.cancel()

        assert isinstance(ctx.error(), ContextCancelledError)

    def test_wait_returns_immediately_when_cancelled(self):
        ctx = RequestContext.background()
        ctx.cancel()

        assert ctx.wait(60) is True

    def test_wait_is_bounded_by_deadline(self, clock):
        """Test waiting past the deadline only waits for the remaining time."""
        ctx = RequestContext(deadline=clock() + 0.0, clock=clock)

        assert ctx.wait(60) is True

    def test_wait_full_duration_on_live_context(self):
        ctx = RequestContext.background()

        assert ctx.wait(0) is False

    def test_with_deadline_in(self):
        ctx = RequestContext.with_deadline_in(30)

        assert ctx.has_deadline is True
        assert 0 < ctx.remaining() <= 30
