"""Shared fixtures: a controllable clock and an engine wired to in-memory collaborators."""
from datetime import datetime, timedelta, timezone

import pytest

from finpet.core.storage import InMemoryStore
from finpet.services.notifications import NotificationFeed
from finpet.services.pet_engine import PET_PROFILE_STORAGE_KEY, PetEngine

START = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def feed() -> NotificationFeed:
    return NotificationFeed()


@pytest.fixture
def make_engine(store, feed, clock):
    def _make(**kwargs) -> PetEngine:
        return PetEngine(store, notifier=feed, clock=clock, **kwargs)
    return _make


@pytest.fixture
def engine(make_engine) -> PetEngine:
    engine = make_engine()
    engine.initialize()
    return engine


@pytest.fixture
def storage_key() -> str:
    return PET_PROFILE_STORAGE_KEY
