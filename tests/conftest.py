"""Shared fixtures: a frozen clock, an in-memory store and an application factory."""

import itertools
from datetime import datetime

import pytest

from tracker.models import JobApplication
from tracker.storage import ApplicationStore, MemoryStore

# Friday, mid-morning
NOW = datetime(2024, 3, 15, 10, 30)


class Clock:
    """Settable clock for the store."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def kv():
    return MemoryStore()


@pytest.fixture
def store(kv, clock):
    ids = (f"job-{n}" for n in itertools.count(1))
    return ApplicationStore(kv, clock=clock, id_factory=lambda: next(ids))


@pytest.fixture
def make_app():
    """Build a JobApplication directly, bypassing the store."""
    counter = itertools.count(1)

    def factory(**fields):
        defaults = {
            "id": f"app-{next(counter)}",
            "company": "Acme",
            "job_title": "Engineer",
            "created_at": NOW,
            "updated_at": NOW,
        }
        defaults.update(fields)
        return JobApplication(**defaults)

    return factory
