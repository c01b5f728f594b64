from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shiftboard.documents.memory_store import InMemoryDocumentStore

FIXED_NOW = datetime(2024, 6, 10, 9, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Store clock that only moves when a test advances it."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(clock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=clock)
