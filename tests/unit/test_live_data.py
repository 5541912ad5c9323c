"""Tests for the live vessel registry and threat feed."""

import random
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from seawatch.core.config import Settings
from seawatch.core.events import EventBus, EventTypes
from seawatch.core.timeutils import Clock
from seawatch.schemas.vessel import AISMessage, FocusMode, VesselStatus
from seawatch.services.live_data import (
    MAX_THREAT_ALERTS,
    LiveDataService,
    determine_status,
    generate_demo_fleet,
)


def _ais(now: datetime, **overrides: object) -> AISMessage:
    data: dict = {
        "mmsi": "244660000",
        "ship_name": "Nordic Trader",
        "latitude": 52.0,
        "longitude": 4.0,
        "speed": 12.0,
        "course": 180.0,
        "timestamp": now,
    }
    data.update(overrides)
    return AISMessage(**data)


@pytest.fixture
def service(test_settings: Settings, bus: EventBus, clock: Clock) -> LiveDataService:
    return LiveDataService(
        settings=test_settings, bus=bus, rng=random.Random(7), clock=clock
    )


class TestDetermineStatus:
    """Tests for AIS report status derivation."""

    def test_recent_normal_speed_is_active(self, now: datetime) -> None:
        """Test a fresh report at cruising speed."""
        assert determine_status(_ais(now), now) == VesselStatus.active

    def test_fast_is_warning(self, now: datetime) -> None:
        """Test that speeds over 30 knots raise a warning."""
        assert determine_status(_ais(now, speed=30.5), now) == VesselStatus.warning
        assert determine_status(_ais(now, speed=30.0), now) == VesselStatus.active

    def test_old_report_is_dark(self, now: datetime) -> None:
        """Test that reports older than 30 minutes mark the vessel dark."""
        old = _ais(now - timedelta(minutes=31), speed=40.0)
        assert determine_status(old, now) == VesselStatus.dark
        assert determine_status(_ais(now - timedelta(minutes=30)), now) == VesselStatus.active


class TestDemoFleet:
    """Tests for the demo fleet."""

    def test_demo_fleet_shape(self, clock: Clock, now: datetime) -> None:
        """Test the five demo vessels and their fixed traits."""
        fleet = generate_demo_fleet(random.Random(1), clock)

        assert [v.id for v in fleet] == [
            "IMO-001",
            "IMO-002",
            "UNKNOWN-003",
            "UNKNOWN-004",
            "IMO-005",
        ]
        ghost = fleet[2]
        assert ghost.status == VesselStatus.dark
        assert ghost.last_update == now - timedelta(hours=2)
        assert fleet[3].last_update == now - timedelta(hours=6)
        assert fleet[4].lat > 60

    def test_demo_fleet_served_until_ais_arrives(self, service: LiveDataService) -> None:
        """Test that the demo fleet is stable across calls."""
        first = service.vessels()
        assert len(first) == 5
        assert service.vessels() == first

    def test_focus_modes_over_demo_fleet(self, service: LiveDataService) -> None:
        """Test that focus mode presets narrow the demo fleet."""
        assert {v.id for v in service.vessels(FocusMode.ghost)} == {
            "UNKNOWN-003",
            "UNKNOWN-004",
        }
        assert [v.id for v in service.vessels(FocusMode.arctic)] == ["IMO-005"]

    def test_no_demo_fleet_without_demo_mode(self, bus: EventBus, clock: Clock) -> None:
        """Test that only tracked vessels are served when demo mode is off."""
        settings = Settings(_env_file=None, DEMO_MODE=False)
        service = LiveDataService(settings=settings, bus=bus, clock=clock)
        assert service.vessels() == []


class TestUpdateFromAis:
    """Tests for AIS upserts."""

    @pytest.mark.asyncio
    async def test_upsert_replaces_demo_fleet(
        self, service: LiveDataService, now: datetime
    ) -> None:
        """Test that a tracked vessel replaces the demo fleet."""
        vessel = await service.update_vessel_from_ais(_ais(now))

        assert vessel.id == "244660000"
        assert vessel.heading == 180.0
        assert [v.id for v in service.vessels()] == ["244660000"]
        assert service.get_vessel("244660000") == vessel

    @pytest.mark.asyncio
    async def test_upsert_by_mmsi(self, service: LiveDataService, now: datetime) -> None:
        """Test that a second report for the same MMSI updates in place."""
        await service.update_vessel_from_ais(_ais(now))
        await service.update_vessel_from_ais(_ais(now, latitude=53.0, ship_name=None))

        vessels = service.vessels()
        assert len(vessels) == 1
        assert vessels[0].lat == 53.0
        assert vessels[0].name == "MMSI-244660000"

    @pytest.mark.asyncio
    async def test_update_publishes(
        self, service: LiveDataService, bus: EventBus, now: datetime
    ) -> None:
        """Test that AIS updates notify live data subscribers."""
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        service.subscribe(handler)
        await service.update_vessel_from_ais(_ais(now))

        assert len(received) == 1
        assert received[0]["new_alerts"] == []
        assert received[0]["timestamp"] == now
        assert len(received[0]["vessels"]) == 1


class TestThreatFeed:
    """Tests for threat alert generation and expiry."""

    @pytest.mark.asyncio
    async def test_tick_raises_threat(
        self,
        test_settings: Settings,
        bus: EventBus,
        clock: Clock,
        make_rng: Callable,
    ) -> None:
        """Test that a low draw raises and publishes a threat."""
        service = LiveDataService(
            settings=test_settings, bus=bus, rng=make_rng([0.05, 0.5]), clock=clock
        )
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        bus.subscribe(EventTypes.LIVE_DATA_UPDATED, handler)
        new_alerts = await service.tick()

        assert len(new_alerts) == 1
        assert new_alerts[0].id == "THREAT-1"
        assert received[0]["new_alerts"] == new_alerts
        assert service.threat_alerts == new_alerts

    @pytest.mark.asyncio
    async def test_tick_respects_cap(
        self,
        test_settings: Settings,
        bus: EventBus,
        clock: Clock,
        make_rng: Callable,
    ) -> None:
        """Test that no more than five threats are held."""
        service = LiveDataService(
            settings=test_settings, bus=bus, rng=make_rng([0.0]), clock=clock
        )
        for _ in range(MAX_THREAT_ALERTS + 3):
            await service.tick()

        assert len(service.threat_alerts) == MAX_THREAT_ALERTS

    @pytest.mark.asyncio
    async def test_quiet_tick_does_not_publish(
        self,
        test_settings: Settings,
        bus: EventBus,
        clock: Clock,
        make_rng: Callable,
    ) -> None:
        """Test that a tick without a new threat publishes nothing."""
        service = LiveDataService(
            settings=test_settings, bus=bus, rng=make_rng([0.5]), clock=clock
        )
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        service.subscribe(handler)

        assert await service.tick() == []
        assert received == []

    def test_expire_threat_alerts(
        self, test_settings: Settings, bus: EventBus, now: datetime
    ) -> None:
        """Test that threats older than a day are dropped."""
        current = [now]
        service = LiveDataService(
            settings=test_settings,
            bus=bus,
            rng=random.Random(3),
            clock=lambda: current[0],
        )
        service._threats.append(service.generate_threat_alert())

        current[0] = now + timedelta(hours=24)
        assert service.expire_threat_alerts() == 0

        current[0] = now + timedelta(hours=24, seconds=1)
        assert service.expire_threat_alerts() == 1
        assert service.threat_alerts == []
