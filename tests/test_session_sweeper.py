"""
Tests for the background session sweeper
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import time
from datetime import datetime, timedelta, timezone

import pytest

from symptom_triage.core.session_store import SessionStore
from symptom_triage.core.session_sweeper import SessionSweeper


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class BrokenStore:
    """Store whose sweep always fails"""

    def __init__(self):
        self.calls = 0

    def sweep(self, max_age):
        self.calls += 1
        raise RuntimeError("storage unavailable")


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore("fever_check", clock=clock)


def test_rejects_non_positive_interval(store):
    with pytest.raises(ValueError):
        SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(0))


def test_run_once_sweeps_synchronously(store, clock):
    store.create()
    clock.advance(minutes=90)
    sweeper = SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(minutes=15))

    assert sweeper.run_once() == 1
    assert sweeper.sweep_count == 1
    assert len(store) == 0


def test_not_running_until_started(store):
    sweeper = SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(minutes=15))
    assert sweeper.is_running is False
    # stop() before start() is a no-op
    sweeper.stop()


@pytest.mark.slow
def test_background_thread_removes_stale_sessions(store, clock):
    stale = store.create()
    clock.advance(minutes=90)
    fresh = store.create()

    with SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(milliseconds=10)) as sweeper:
        assert sweeper.is_running
        assert wait_until(lambda: not store.contains(stale.id))

    assert store.contains(fresh.id)
    assert sweeper.is_running is False


@pytest.mark.slow
def test_stop_wakes_thread_immediately(store):
    sweeper = SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(hours=1))
    sweeper.start()

    started = time.monotonic()
    sweeper.stop()

    assert time.monotonic() - started < 1.0
    assert sweeper.is_running is False
    assert sweeper.sweep_count == 0


@pytest.mark.slow
def test_start_twice_is_noop(store):
    sweeper = SessionSweeper(store, max_age=timedelta(minutes=60), interval=timedelta(hours=1))
    sweeper.start()
    thread = sweeper._thread

    sweeper.start()

    assert sweeper._thread is thread
    sweeper.stop()


@pytest.mark.slow
def test_sweep_errors_do_not_kill_thread():
    broken = BrokenStore()
    sweeper = SessionSweeper(broken, max_age=timedelta(minutes=60), interval=timedelta(milliseconds=10))

    with sweeper:
        assert wait_until(lambda: broken.calls >= 3)
        assert sweeper.is_running
