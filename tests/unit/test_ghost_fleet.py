"""Tests for ghost fleet detection."""

import random
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from seawatch.core.config import Settings
from seawatch.core.events import EventBus, EventTypes
from seawatch.core.exceptions import BackendError
from seawatch.core.timeutils import Clock
from seawatch.schemas.ghost_fleet import GhostAlertType
from seawatch.schemas.pattern import BehaviorPattern, PatternType
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import Vessel, VesselPosition, VesselStatus
from seawatch.services.ghost_fleet import (
    HISTORY_LIMIT,
    RECOMMENDATIONS,
    GhostFleetDetectionService,
    ais_gap_severity,
    classify_alert,
    route_deviation_severity,
    speed_anomaly_severity,
)
from seawatch.services.live_data import LiveDataService


class FakeDataService:
    """Stands in for the backend data service."""

    def __init__(
        self,
        positions: list[VesselPosition] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.positions = positions or []
        self.error = error
        self.since: datetime | None = None

    async def get_recent_positions(self, since: datetime) -> list[VesselPosition]:
        self.since = since
        if self.error is not None:
            raise self.error
        return self.positions


def _fix(now: datetime, hours: float, **overrides: object) -> VesselPosition:
    data: dict = {
        "mmsi": "273000001",
        "latitude": 60.0,
        "longitude": 30.0,
        "speed_knots": 0.5,
        "course_degrees": 0.0,
        "timestamp_utc": now - timedelta(hours=24) + timedelta(hours=hours),
    }
    data.update(overrides)
    return VesselPosition(**data)


@pytest.fixture
def make_service(
    test_settings: Settings, bus: EventBus, clock: Clock
) -> Callable[..., GhostFleetDetectionService]:
    """Factory for detection services with a fake backend and no live vessels."""

    def _make(
        rng: random.Random | None = None,
        data_service: FakeDataService | None = None,
    ) -> GhostFleetDetectionService:
        live = LiveDataService(
            settings=Settings(_env_file=None, DEMO_MODE=False), bus=bus, clock=clock
        )
        return GhostFleetDetectionService(
            settings=test_settings,
            bus=bus,
            rng=rng or random.Random(0),
            clock=clock,
            data_service=data_service or FakeDataService(),  # type: ignore[arg-type]
            live_data=live,
        )

    return _make


class TestSeverityHelpers:
    """Tests for the severity thresholds."""

    @pytest.mark.parametrize(
        ("hours", "expected"),
        [(25, Severity.critical), (13, Severity.high), (7, Severity.medium), (6, Severity.low)],
    )
    def test_ais_gap_severity(self, hours: float, expected: Severity) -> None:
        """Test signal gap severity bands."""
        assert ais_gap_severity(hours) == expected

    @pytest.mark.parametrize(
        ("difference", "expected"),
        [(21, Severity.critical), (16, Severity.high), (11, Severity.medium), (9, Severity.low)],
    )
    def test_speed_anomaly_severity(self, difference: float, expected: Severity) -> None:
        """Test speed anomaly severity bands."""
        assert speed_anomaly_severity(difference) == expected

    @pytest.mark.parametrize(
        ("distance", "expected"),
        [
            (121, Severity.critical),
            (100, Severity.high),
            (50, Severity.medium),
            (40, Severity.low),
        ],
    )
    def test_route_deviation_severity(self, distance: float, expected: Severity) -> None:
        """Test route deviation severity bands."""
        assert route_deviation_severity(distance) == expected


class TestClassifyAlert:
    """Tests for alert type classification."""

    @staticmethod
    def _patterns(now: datetime, *kinds: PatternType) -> list[BehaviorPattern]:
        return [
            BehaviorPattern(
                id=f"p-{kind.value}",
                vessel_id="V",
                pattern_type=kind,
                severity=Severity.low,
                confidence=0.5,
                detected_at=now,
                location=(0.0, 0.0),
                description="",
            )
            for kind in kinds
        ]

    @pytest.mark.parametrize(
        ("kinds", "expected"),
        [
            ((PatternType.ais_gap, PatternType.identity_switch), GhostAlertType.newly_dark),
            ((PatternType.identity_switch,), GhostAlertType.sanction_evasion),
            ((PatternType.speed_anomaly,), GhostAlertType.sanction_evasion),
            ((PatternType.loitering,), GhostAlertType.illegal_fishing),
            ((PatternType.route_deviation,), GhostAlertType.suspicious_behavior),
        ],
    )
    def test_classify(
        self, now: datetime, kinds: tuple[PatternType, ...], expected: GhostAlertType
    ) -> None:
        """Test that the strongest signal picks the alert type."""
        assert classify_alert(self._patterns(now, *kinds)) == expected


class TestSnapshotDetection:
    """Tests for detection over the live vessel list."""

    def test_dark_vessel_with_speed_anomaly(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        make_vessel: Callable[..., Vessel],
        make_rng: Callable,
        now: datetime,
    ) -> None:
        """Test the AIS gap and speed anomaly detectors together."""
        service = make_service(rng=make_rng([0.0]))
        vessel = make_vessel(
            id="UNKNOWN-003",
            status=VesselStatus.dark,
            last_update=now - timedelta(hours=3),
            vessel_type="tanker",
            speed=0.0,
        )

        patterns = service.analyze_vessel(vessel)

        assert [p.pattern_type for p in patterns] == [
            PatternType.ais_gap,
            PatternType.speed_anomaly,
        ]
        gap, speed = patterns
        assert gap.confidence == 0.85
        assert gap.evidence["time_gap"] == pytest.approx(3.0)
        assert gap.severity == Severity.low
        assert speed.severity == Severity.medium
        assert speed.confidence == 0.68
        assert service.history("UNKNOWN-003") == patterns

    def test_simulated_route_and_identity_checks(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        make_vessel: Callable[..., Vessel],
        make_rng: Callable,
    ) -> None:
        """Test the simulated detectors when the draws exceed their thresholds."""
        service = make_service(rng=make_rng([0.9, 0.5, 0.99]))
        vessel = make_vessel(id="IMO-1234567", vessel_type="tanker", speed=12.0)

        alerts = service.detect_suspicious_behavior([vessel])

        assert len(alerts) == 1
        alert = alerts[0]
        kinds = [p.pattern_type for p in alert.patterns]
        assert kinds == [PatternType.route_deviation, PatternType.identity_switch]
        route, identity = alert.patterns
        assert route.evidence["deviation_distance"] == pytest.approx(100.0)
        assert route.severity == Severity.high
        assert identity.evidence["previous_identity"] == "PREV-4567"
        assert alert.risk_level == Severity.high
        assert alert.alert_type == GhostAlertType.sanction_evasion
        assert alert.recommendation == RECOMMENDATIONS[Severity.high]
        assert alert.location == (vessel.lng, vessel.lat)

    def test_clean_vessel_raises_no_alert(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        make_vessel: Callable[..., Vessel],
        make_rng: Callable,
    ) -> None:
        """Test that a normal vessel produces nothing."""
        service = make_service(rng=make_rng([0.0]))
        vessel = make_vessel(vessel_type="cargo", speed=15.0)
        assert service.detect_suspicious_behavior([vessel]) == []

    def test_history_capped(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        make_vessel: Callable[..., Vessel],
        make_rng: Callable,
    ) -> None:
        """Test that only the newest patterns are kept per vessel."""
        service = make_service(rng=make_rng([0.0]))
        vessel = make_vessel(id="V-dark", status=VesselStatus.dark, speed=0.0)

        for _ in range(40):
            service.analyze_vessel(vessel)

        assert len(service.history("V-dark")) == HISTORY_LIMIT


class TestPositionHistory:
    """Tests for detection over backend position history."""

    def test_needs_two_fixes(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that a single fix produces no patterns."""
        service = make_service()
        assert service.detect_position_patterns("1", [_fix(now, 0)]) == []

    def test_signal_gap(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that a gap over four hours is reported, order-independent."""
        service = make_service()
        fixes = [_fix(now, 7), _fix(now, 0), _fix(now, 1)]

        patterns = service.detect_position_patterns("1", fixes)

        assert [p.pattern_type for p in patterns] == [PatternType.ais_gap]
        assert patterns[0].severity == Severity.medium
        assert patterns[0].evidence["time_gap"] == pytest.approx(6.0)
        assert patterns[0].confidence == pytest.approx(0.725)

    def test_impossible_speed(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that speeds over 50 knots are critical."""
        service = make_service()
        fixes = [_fix(now, h, speed_knots=s) for h, s in ((0, 10.0), (1, 12.0), (2, 55.0))]

        patterns = service.detect_position_patterns("1", fixes)

        assert [p.pattern_type for p in patterns] == [PatternType.speed_anomaly]
        assert patterns[0].severity == Severity.critical

    def test_erratic_speed(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that a speed range over 30 knots is high."""
        service = make_service()
        fixes = [_fix(now, h, speed_knots=s) for h, s in ((0, 5.0), (1, 20.0), (2, 40.0))]

        patterns = service.detect_position_patterns("1", fixes)

        assert patterns[0].severity == Severity.high
        assert patterns[0].evidence["speed_variation"] == pytest.approx(35.0)

    def test_course_changes(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that more than three sharp turns are reported."""
        service = make_service()
        courses = (0.0, 180.0, 0.0, 180.0, 0.0)
        fixes = [_fix(now, h, course_degrees=c, speed_knots=0) for h, c in enumerate(courses)]

        patterns = service.detect_position_patterns("1", fixes)

        assert [p.pattern_type for p in patterns] == [PatternType.route_deviation]
        assert patterns[0].evidence["course_changes"] == 4

    def test_three_turns_not_reported(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that three sharp turns stay under the threshold."""
        service = make_service()
        courses = (0.0, 180.0, 0.0, 180.0)
        fixes = [_fix(now, h, course_degrees=c, speed_knots=0) for h, c in enumerate(courses)]
        assert service.detect_position_patterns("1", fixes) == []

    def test_course_wraps_around_north(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that 350 to 10 degrees counts as a small turn."""
        service = make_service()
        courses = (350.0, 10.0, 350.0, 10.0, 350.0)
        fixes = [_fix(now, h, course_degrees=c, speed_knots=0) for h, c in enumerate(courses)]
        assert service.detect_position_patterns("1", fixes) == []

    def test_loitering(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that staying within 5 km for over 8 hours is loitering."""
        service = make_service()
        fixes = [_fix(now, h) for h in range(0, 12, 2)]

        patterns = service.detect_position_patterns("1", fixes)

        assert [p.pattern_type for p in patterns] == [PatternType.loitering]
        assert patterns[0].evidence["duration"] == pytest.approx(10.0)
        assert patterns[0].location == pytest.approx((30.0, 60.0))

    def test_detect_from_positions_groups_by_mmsi(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test one alert per suspicious vessel named from the embedded record."""
        service = make_service()
        suspicious = [
            _fix(now, 0, mmsi="A", vessel_name="Dark Star"),
            _fix(now, 10, mmsi="A", latitude=61.0),
        ]
        quiet = [_fix(now, 0, mmsi="B"), _fix(now, 1, mmsi="B")]

        alerts = service.detect_from_positions(suspicious + quiet)

        assert len(alerts) == 1
        assert alerts[0].vessel_id == "A"
        assert alerts[0].vessel_name == "Dark Star"
        assert alerts[0].location == (30.0, 61.0)
        assert alerts[0].alert_type == GhostAlertType.newly_dark

    def test_detect_from_positions_default_name(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test the MMSI fallback name."""
        service = make_service()
        fixes = [_fix(now, 0, mmsi="C"), _fix(now, 9, mmsi="C")]
        alerts = service.detect_from_positions(fixes)
        assert alerts[0].vessel_name == "MMSI-C"


class TestScan:
    """Tests for full scans."""

    @pytest.mark.asyncio
    async def test_scan_publishes_history_alerts(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        bus: EventBus,
        now: datetime,
    ) -> None:
        """Test that scans publish and retain alerts from position history."""
        data = FakeDataService([_fix(now, 0), _fix(now, 10)])
        service = make_service(data_service=data)
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        service.subscribe(handler)
        alerts = await service.scan()

        assert len(alerts) == 1
        assert received == [{"alerts": alerts}]
        assert service.alerts == alerts
        assert data.since == now - timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_backend_failure_yields_no_alerts(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        bus: EventBus,
    ) -> None:
        """Test that backend errors are absorbed and nothing is published."""
        data = FakeDataService(error=BackendError("select:vessel_positions", "down"))
        service = make_service(data_service=data)
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        bus.subscribe(EventTypes.GHOST_FLEET_DETECTED, handler)

        assert await service.scan() == []
        assert received == []
        assert service.alerts == []


class TestReporting:
    """Tests for detection statistics and exports."""

    def test_stats_and_export(
        self,
        make_service: Callable[..., GhostFleetDetectionService],
        make_vessel: Callable[..., Vessel],
        make_rng: Callable,
        now: datetime,
    ) -> None:
        """Test stats over the pattern history and the flattened export."""
        service = make_service(rng=make_rng([0.0]))
        service.analyze_vessel(make_vessel(id="D", status=VesselStatus.dark, speed=0.0))
        service.analyze_vessel(make_vessel(id="E", vessel_type="cargo", speed=15.0))

        stats = service.detection_stats()
        export = service.export_detection_data()

        assert stats.total_vessels_monitored == 2
        assert stats.active_alerts == 2
        assert stats.confidence_threshold == 0.65
        assert "AIS Gap Detection" in stats.detection_algorithms
        assert len(export) == 2
        assert all(row["exported_at"] == now.isoformat() for row in export)
        assert export[0]["vessel_id"] == "D"

    def test_history_detections_are_recorded(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that position-history patterns reach history, stats and export."""
        service = make_service()

        alerts = service.detect_from_positions([_fix(now, 0), _fix(now, 10)])

        history = service.history("273000001")
        assert [p.pattern_type for p in history] == [PatternType.ais_gap]
        assert alerts[0].patterns == history
        stats = service.detection_stats()
        assert stats.total_vessels_monitored == 1
        assert stats.active_alerts == 1
        assert [row["id"] for row in service.export_detection_data()] == [history[0].id]

    def test_quiet_history_monitored_without_patterns(
        self, make_service: Callable[..., GhostFleetDetectionService], now: datetime
    ) -> None:
        """Test that a vessel with clean fixes is counted but has no patterns."""
        service = make_service()

        assert service.detect_position_patterns("273000001", [_fix(now, 0), _fix(now, 1)]) == []

        assert service.history("273000001") == []
        assert service.detection_stats().total_vessels_monitored == 1
        assert service.export_detection_data() == []
