"""Pytest configuration and fixtures for the loginsight tests."""

import os

import pytest
from whenever import Instant, TimeDelta

from loginsight.config import InsightsConfig
from loginsight.store import InMemoryKeyValueStore


class FakeClock:
    """Manually advanced clock for deterministic scheduling tests."""

    def __init__(self, start: Instant) -> None:
        self.now = start

    def __call__(self) -> Instant:
        return self.now

    def advance(self, **kwargs: float) -> Instant:
        self.now = self.now + TimeDelta(**kwargs)
        return self.now


class BrokenStore:
    """KeyValueStore whose every call fails like an unreachable backend."""

    def get(self, key):
        raise OSError("disk gone")

    def set(self, key, value):
        raise OSError("disk gone")

    def exists(self, key):
        raise OSError("disk gone")


@pytest.fixture(scope="session", autouse=True)
def _clean_env():
    """Keep LOGINSIGHT_* variables from the host out of every test."""
    with pytest.MonkeyPatch.context() as mp:
        for key in list(os.environ):
            if key.upper().startswith("LOGINSIGHT_"):
                mp.delenv(key, raising=False)
        yield


@pytest.fixture
def start() -> Instant:
    return Instant.parse_iso("2026-03-15T12:00:00Z")


@pytest.fixture
def clock(start) -> FakeClock:
    return FakeClock(start)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_config():
    """Build an InsightsConfig with insights on and retention off."""

    def _make(**overrides) -> InsightsConfig:
        values = {"insights_enabled": True, "insight_retention_period": 0}
        values.update(overrides)
        return InsightsConfig(**values)

    return _make
