"""
Unit tests for the collection cache and the scrape gate.
"""
import threading
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from collection_schedule.cache import CollectionCache, ReadWriteLock, ScrapeGate
from collection_schedule.context import ScrapeContext
from collection_schedule.exceptions import DeadlineExceededError, FetchError
from collection_schedule.models import CollectionEvent, WasteType

LONDON = ZoneInfo("Europe/London")


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def events():
    return [CollectionEvent(datetime(2025, 12, 2, 6, tzinfo=LONDON), WasteType.REFUSE)]


def test_get_returns_none_when_empty():
    assert CollectionCache().get(60) is None


def test_get_within_ttl_and_after_expiry(events):
    clock = FakeClock()
    cache = CollectionCache(clock=clock)
    cache.set(events)

    clock.now += 60
    assert cache.get(60) == events

    clock.now += 0.5
    assert cache.get(60) is None


def test_non_positive_ttl_disables_cache(events):
    cache = CollectionCache(clock=FakeClock())
    cache.set(events)

    assert cache.get(0) is None
    assert cache.get(-1) is None


def test_get_returns_a_copy(events):
    cache = CollectionCache(clock=FakeClock())
    cache.set(events)

    cache.get(60).clear()

    assert cache.get(60) == events


def test_set_bumps_generation(events):
    cache = CollectionCache()
    assert cache.generation == 0

    cache.set(events)
    cache.set([])

    assert cache.generation == 2
    assert cache.get(60) == []


def test_write_lock_excludes_readers():
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader():
        with lock.read():
            entered.set()

    with lock.write():
        thread = threading.Thread(target=reader)
        thread.start()
        assert not entered.wait(0.1)
    thread.join(timeout=1)
    assert entered.is_set()


def test_gate_runs_function_once_for_concurrent_callers():
    gate = ScrapeGate()
    release = threading.Event()
    calls = []
    results = []

    def scrape():
        calls.append(1)
        release.wait(2)
        return ["events"]

    def caller():
        results.append(gate.run(0, scrape, ScrapeContext(timeout=5)))

    threads = [threading.Thread(target=caller) for _ in range(5)]
    for thread in threads:
        thread.start()
    # Let every follower reach the gate before the leader finishes.
    threading.Event().wait(0.2)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert len(calls) == 1
    assert results == [["events"]] * 5


def test_gate_followers_share_leader_error():
    gate = ScrapeGate()
    release = threading.Event()
    calls = []
    errors = []

    def scrape():
        calls.append(1)
        release.wait(2)
        raise FetchError("fetch schedule: unexpected status 500")

    def caller():
        try:
            gate.run(0, scrape, ScrapeContext(timeout=5))
        except FetchError as e:
            errors.append(e)

    threads = [threading.Thread(target=caller) for _ in range(3)]
    for thread in threads:
        thread.start()
    threading.Event().wait(0.2)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert len(calls) == 1
    assert len(errors) == 3


def test_gate_runs_again_after_flight_completes():
    gate = ScrapeGate()
    calls = []

    def scrape():
        calls.append(1)
        return len(calls)

    assert gate.run(0, scrape, ScrapeContext()) == 1
    assert gate.run(0, scrape, ScrapeContext()) == 2


def test_gate_follower_gives_up_at_its_deadline():
    gate = ScrapeGate()
    release = threading.Event()
    leader = threading.Thread(target=gate.run, args=(0, lambda: release.wait(2), ScrapeContext()))
    leader.start()
    threading.Event().wait(0.1)

    with pytest.raises(DeadlineExceededError):
        gate.run(0, lambda: None, ScrapeContext(timeout=0.1))

    release.set()
    leader.join(timeout=5)
