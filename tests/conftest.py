"""Shared pytest fixtures for shared timer tests."""

import pytest

from shared_timer.adapters.backends import InMemoryKeyValueHub
from shared_timer.domain.models import MINUTE_MS, TimerSettings
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Fake wall clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def hub(clock: FakeClock) -> InMemoryKeyValueHub:
    """Fresh in-process store shared by the clients of one test."""
    return InMemoryKeyValueHub(clock)


@pytest.fixture
def settings() -> TimerSettings:
    """25 minute work, 5 minute break, +1 per work phase, auto start."""
    return TimerSettings(work_duration_ms=25 * MINUTE_MS, break_duration_ms=5 * MINUTE_MS)
