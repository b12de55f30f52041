"""
Deadline and cancellation carrier for provider operations.

Every client operation takes a ``RequestContext``. Retry loops wait on it, so a
cancelled context or a passed deadline ends the loop between attempts. Derived
contexts are cancelled with their parent, never the reverse, and may only
tighten its deadline.
"""

import threading
import time
import weakref
from typing import Callable, Optional

from ..exceptions import ContextCancelledError, ContextError, DeadlineExceededError


class RequestContext:
    """Carries an optional monotonic deadline and a cancellation flag."""

    def __init__(
        self,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            deadline: Absolute deadline on ``clock``'s timeline, or None
            clock: Monotonic time source
        """
        self.deadline = deadline
        self._clock = clock
        self._cancel_event = threading.Event()
        self._children: "weakref.WeakSet[RequestContext]" = weakref.WeakSet()
        self._lock = threading.Lock()

    @classmethod
    def background(cls) -> "RequestContext":
        """A context with no deadline that is never cancelled unless asked."""
        return cls()

    @classmethod
    def with_deadline_in(cls, seconds: float) -> "RequestContext":
        return cls.background().with_timeout(seconds)

    @property
    def has_deadline(self) -> bool:
        return self.deadline is not None

    def with_timeout(self, seconds: float) -> "RequestContext":
        """Derive a context whose deadline is at most ``seconds`` from now."""
        candidate = self._clock() + seconds
        if self.deadline is not None and self.deadline <= candidate:
            candidate = self.deadline
        child = RequestContext(deadline=candidate, clock=self._clock)
        with self._lock:
            if self._cancel_event.is_set():
                child._cancel_event.set()
            else:
                self._children.add(child)
        return child

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline (never negative), or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        with self._lock:
            self._cancel_event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def error(self) -> Optional[ContextError]:
        """Why the context ended, or None while it is still live."""
        if self.cancelled:
            return ContextCancelledError()
        if self.expired():
            return DeadlineExceededError()
        return None

    def wait(self, seconds: float) -> bool:
        """
        Block for up to ``seconds``.

        Returns:
            True if the context ended before or during the wait, False if the
            full duration elapsed with the context still live.
        """
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        if self._cancel_event.wait(timeout):
            return True
        return self.done()
