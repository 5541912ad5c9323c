"""Shared fixtures for SeaWatch tests."""

import random
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from seawatch.core.config import Settings
from seawatch.core.timeutils import Clock
from seawatch.core.events import EventBus
from seawatch.schemas.alert import Alert, AlertStatus, AlertType
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import Vessel, VesselStatus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def now() -> datetime:
    """The fixed point in time used by every clock-aware test."""
    return NOW


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="testing",
        BACKEND_URL="http://backend.test",
        BACKEND_API_KEY="test-key",
        WEATHER_API_KEY="",
        SIMULATIONS_ENABLED=False,
    )


@pytest.fixture
def bus() -> EventBus:
    """A fresh event bus so services under test do not share handlers."""
    return EventBus()


class ScriptedRandom(random.Random):
    """Random source whose ``random()`` replays a fixed script, then repeats the last value."""

    def __init__(self, values: list[float]) -> None:
        super().__init__(0)
        self._values = list(values)

    def random(self) -> float:
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0]

    def getrandbits(self, k: int) -> int:
        # Keeps choice() and randrange() off the script
        return super().getrandbits(k)


@pytest.fixture
def make_alert() -> Callable[..., Alert]:
    """Factory for alerts with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> Alert:
        data: dict[str, Any] = {
            "id": f"T-{next(counter)}",
            "type": AlertType.security,
            "severity": Severity.medium,
            "title": "Test alert",
            "description": "Something happened",
            "timestamp": NOW - timedelta(minutes=5),
            "status": AlertStatus.new,
        }
        data.update(overrides)
        return Alert(**data)

    return _make


@pytest.fixture
def make_vessel() -> Callable[..., Vessel]:
    """Factory for vessels with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> Vessel:
        data: dict[str, Any] = {
            "id": f"V-{next(counter)}",
            "name": "Test vessel",
            "lat": 0.0,
            "lng": 0.0,
            "speed": 12.0,
            "heading": 90.0,
            "status": VesselStatus.active,
            "last_update": NOW,
            "vessel_type": "tanker",
        }
        data.update(overrides)
        return Vessel(**data)

    return _make


@pytest.fixture
def make_rng() -> Callable[[list[float]], ScriptedRandom]:
    """Factory for random sources with a scripted ``random()`` sequence."""
    return ScriptedRandom


@pytest.fixture
def clock() -> Clock:
    """Clock frozen at :data:`NOW`."""
    return fixed_clock
