"""
Bounded retry with jittered delays.

The engine is a pure backoff primitive. The operation passed to it returns a
``(result, done, error)`` triple and decides on its own which failures are
worth another attempt; the engine only keeps calling it until it reports
``done``, the context is cancelled, or the ceiling elapses.
"""

import random
import time
from typing import Any, Callable, Optional, Tuple

from .constants import Timeouts
from .context.request_context import RequestContext
from .exceptions import DeadlineExceededError, RetryError
from .utils.logger import get_logger

Attempt = Tuple[Any, bool, Optional[Exception]]
WaitFunc = Callable[[RequestContext, float], bool]


def _wait_on_context(ctx: RequestContext, seconds: float) -> bool:
    return ctx.wait(seconds)


class Retrier:
    """Calls an operation until it completes, with 2s-8s jittered delays in between."""

    def __init__(
        self,
        timeout: float = Timeouts.RETRY_CEILING,
        rng: Optional[random.Random] = None,
        wait: Optional[WaitFunc] = None,
    ):
        """
        Args:
            timeout: Ceiling installed when the incoming context has no deadline
            rng: Source of jitter; seeded from the clock when omitted
            wait: Sleeps on the context, returning True if it ended meanwhile
        """
        self.timeout = timeout
        self.rng = rng or random.Random(time.time_ns())
        self._wait = wait or _wait_on_context
        self.logger = get_logger()

    def next_delay(self) -> float:
        """Seconds to wait before the next attempt, uniform over [2.0, 8.0)."""
        millis = Timeouts.RETRY_MIN_DELAY_MS + self.rng.randrange(Timeouts.RETRY_JITTER_MS)
        return millis / 1000.0

    def __call__(self, ctx: RequestContext, func: Callable[[], Attempt]) -> Any:
        """
        Run ``func`` until it reports completion.

        Returns:
            The result of the completing attempt

        Raises:
            The completing attempt's error, if it returned one
            RetryError: If the context ended first
        """
        if not ctx.has_deadline:
            ctx = ctx.with_timeout(self.timeout)

        attempt = 0
        while True:
            attempt += 1
            result, done, err = func()
            if done:
                if err is not None:
                    raise err
                return result

            delay = self.next_delay()
            self.logger.debug(
                "Operation not complete, retrying",
                extra={"attempt": attempt, "delay_seconds": delay},
            )
            if self._wait(ctx, delay) or ctx.done():
                raise RetryError(ctx.error() or DeadlineExceededError(), attempts=attempt)


def retry(
    ctx: RequestContext,
    func: Callable[[], Attempt],
    rng: Optional[random.Random] = None,
) -> Any:
    """Run ``func`` under a default ``Retrier``."""
    return Retrier(rng=rng)(ctx, func)
