"""
This module provides the ScrapeContext passed through every step of a scrape.

A context carries an optional deadline and a cancellation flag. Waiting is done
on the flag so that cancelling interrupts a pause immediately.
"""
import threading
import time
from typing import Callable, Optional

from .exceptions import ContextCancelledError, DeadlineExceededError

# Granularity used when waiting on another event while watching the deadline.
_POLL_INTERVAL = 0.05


class ScrapeContext:
    """Cancellation and deadline for one scrape."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._cancelled = threading.Event()
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        """
        Raises if the context has ended.

        Raises:
            ContextCancelledError: If cancel() was called.
            DeadlineExceededError: If the deadline has passed.
        """
        if self._cancelled.is_set():
            raise ContextCancelledError("context cancelled")
        if self.deadline is not None and self._clock() >= self.deadline:
            raise DeadlineExceededError("context deadline exceeded")

    def timeout_for(self, default: float) -> float:
        """Caps a per-request timeout at the time left in this context."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def sleep(self, seconds: float) -> None:
        """
        Sleeps for the given time unless the context ends first.

        Raises:
            ContextCancelledError: If cancelled while sleeping.
            DeadlineExceededError: If the deadline passes before the sleep ends.
        """
        self.check()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancelled.wait(remaining)
            self.check()
            # Deadline reached exactly at the end of the wait.
            raise DeadlineExceededError("context deadline exceeded")
        if self._cancelled.wait(seconds):
            raise ContextCancelledError("context cancelled")

    def wait_for(self, event: threading.Event) -> None:
        """Blocks until event is set, raising if the context ends first."""
        while not event.is_set():
            self.check()
            interval = _POLL_INTERVAL
            remaining = self.remaining()
            if remaining is not None:
                interval = min(interval, remaining)
            event.wait(interval)
