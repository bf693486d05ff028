"""Shared fixtures for shell tests: fake timers, a movable clock and sessions."""

from datetime import datetime, timedelta

import pytest

from scripture_scroll.shell.session import CounterSession
from scripture_scroll.shell.store import InMemoryStore


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class TimerRecorder:
    """Timer factory keeping every timer it creates."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class Clock:
    """Settable wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock(datetime(2024, 12, 28, 9, 30))


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def session(store, clock, timers):
    """Rehydrated session over an in-memory store."""
    s = CounterSession(store, clock=clock, timer_factory=timers)
    s.rehydrate()
    yield s
    s.close()
