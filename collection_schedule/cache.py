"""
This module holds the in-memory result cache shared by concurrent requests.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Sequence

from .context import ScrapeContext
from .models import CacheEntry, CollectionEvent

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class CollectionCache:
    """Single-slot, TTL-bounded cache of the latest collection list."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = ReadWriteLock()
        self._entry: Optional[CacheEntry] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        """Counts how many times the cache has been filled."""
        with self._lock.read():
            return self._generation

    def get(self, ttl: float) -> Optional[List[CollectionEvent]]:
        """
        Returns the cached events if present and younger than ttl seconds.

        A ttl of zero or less disables the cache.
        """
        if ttl <= 0:
            return None
        with self._lock.read():
            entry = self._entry
        if entry is None or self._clock() - entry.fetched_at > ttl:
            return None
        return list(entry.events)

    def set(self, events: Sequence[CollectionEvent]) -> None:
        entry = CacheEntry(events=tuple(events), fetched_at=self._clock())
        with self._lock.write():
            self._entry = entry
            self._generation += 1


class _Flight:
    def __init__(self):
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class ScrapeGate:
    """
    Runs at most one scrape per cache generation.

    Callers that miss the cache while a scrape for the same generation is in
    flight wait for it and share its result or error.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._flights: Dict[Any, _Flight] = {}

    def run(self, key: Any, fn: Callable[[], Any], ctx: ScrapeContext) -> Any:
        with self._lock:
            flight = self._flights.get(key)
            leader = flight is None
            if leader:
                flight = self._flights[key] = _Flight()

        if leader:
            try:
                flight.result = fn()
                return flight.result
            except Exception as e:
                flight.error = e
                raise
            finally:
                with self._lock:
                    self._flights.pop(key, None)
                flight.done.set()

        logger.info("Scrape already in progress; waiting for its result.")
        ctx.wait_for(flight.done)
        if flight.error is not None:
            raise flight.error
        return flight.result
