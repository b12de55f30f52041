"""Tests for the bounded retry engine."""

import random

import pytest

from azure_secrets_core.context.request_context import RequestContext
from azure_secrets_core.exceptions import (
    ContextCancelledError,
    DeadlineExceededError,
    RetryError,
    ServiceError,
)
from azure_secrets_core.retry import Retrier, retry


def not_done_then(result, times):
    """Operation reporting not-done ``times`` times, then ``result``."""
    calls = {"count": 0}

    def func():
        calls["count"] += 1
        if calls["count"] <= times:
            return None, False, None
        return result, True, None

    func.calls = calls
    return func


class TestRetrier:
    """Test attempt, delay and termination behavior."""

    def test_immediate_success_never_waits(self, retrier, recording_wait, ctx):
        assert retrier(ctx, lambda: ("ok", True, None)) == "ok"
        assert recording_wait.delays == []

    def test_returns_final_result_after_delays(self, retrier, recording_wait, ctx):
        func = not_done_then("final", times=4)

        assert retrier(ctx, func) == "final"
        assert func.calls["count"] == 5
        assert len(recording_wait.delays) == 4
        assert all(2.0 <= d < 8.0 for d in recording_wait.delays)

    def test_completing_error_is_raised_unchanged(self, retrier, ctx):
        error = ServiceError("terminal")

        with pytest.raises(ServiceError) as exc_info:
            retrier(ctx, lambda: (None, True, error))

        assert exc_info.value is error

    def test_cancellation_during_wait(self, ctx):
        """Test a cancelled context ends the loop with a wrapped cancellation."""

        def cancelling_wait(wait_ctx, seconds):
            wait_ctx.cancel()
            return True

        retrier = Retrier(rng=random.Random(1), wait=cancelling_wait)
        func = not_done_then("never", times=100)

        with pytest.raises(RetryError) as exc_info:
            retrier(ctx, func)

        assert func.calls["count"] == 1
        assert isinstance(exc_info.value.cause, ContextCancelledError)
        assert exc_info.value.message == "retry failed: context canceled"

    def test_deadline_ends_the_loop(self):
        """Test an expired deadline reports deadline exceeded, never a stale success."""
        now = [0.0]
        ctx = RequestContext(clock=lambda: now[0]).with_timeout(10)

        def advancing_wait(wait_ctx, seconds):
            now[0] += seconds
            return wait_ctx.done()

        retrier = Retrier(rng=random.Random(7), wait=advancing_wait)

        with pytest.raises(RetryError) as exc_info:
            retrier(ctx, not_done_then("late", times=100))

        assert isinstance(exc_info.value.cause, DeadlineExceededError)

    def test_installs_ceiling_when_context_has_none(self, ctx):
        seen = []

        def wait(wait_ctx, seconds):
            seen.append(wait_ctx)
            return False

        retrier = Retrier(timeout=80, rng=random.Random(3), wait=wait)
        retrier(ctx, not_done_then("ok", times=1))

        assert seen[0].has_deadline is True
        assert 0 < seen[0].remaining() <= 80
        assert ctx.has_deadline is False

    def test_keeps_shorter_existing_deadline(self):
        ctx = RequestContext.with_deadline_in(5)
        seen = []

        def wait(wait_ctx, seconds):
            seen.append(wait_ctx)
            return False

        Retrier(rng=random.Random(3), wait=wait)(ctx, not_done_then("ok", times=1))

        assert seen[0] is ctx

    def test_delays_are_deterministic_with_seeded_rng(self):
        first = Retrier(rng=random.Random(99))
        second = Retrier(rng=random.Random(99))

        assert [first.next_delay() for _ in range(5)] == [second.next_delay() for _ in range(5)]

    def test_delay_bounds(self):
        retrier = Retrier(rng=random.Random(0))
        delays = [retrier.next_delay() for _ in range(500)]

        assert min(delays) >= 2.0
        assert max(delays) < 8.0


class TestRetryFunction:
    def test_retry_with_immediate_success(self, ctx):
        assert retry(ctx, lambda: (42, True, None)) == 42
