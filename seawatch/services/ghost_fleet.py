"""Ghost fleet detection.

Two detectors feed the same alert model:

* a snapshot detector that looks at the live vessel list (signal gaps,
  speed against the vessel type's normal speed, plus simulated route and
  identity checks), and
* a history detector that looks at the last day of backend positions per
  MMSI (signal gaps, impossible speeds, erratic courses, loitering).

Alerts from a scan are published as ``ghost_fleet.detected``.
"""

import itertools
import math
import random
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from seawatch.analysis.aggregation import risk_level
from seawatch.analysis.filters import age
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.events import EventBus, EventTypes, get_event_bus
from seawatch.core.events.bus import EventHandler, Unsubscribe
from seawatch.core.exceptions import BackendError, BackendNotInitializedError
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, as_utc, utcnow
from seawatch.schemas.ghost_fleet import DetectionStats, GhostAlertType, GhostVesselAlert
from seawatch.schemas.pattern import BehaviorPattern, PatternType
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import Vessel, VesselPosition, VesselStatus
from seawatch.services.data_integration import (
    DataIntegrationService,
    data_integration_service,
)
from seawatch.services.live_data import LiveDataService, live_data_service
from seawatch.services.periodic import PeriodicTask

SIGNAL_GAP = timedelta(hours=2)
HISTORY_LIMIT = 50
MAX_RETAINED_ALERTS = 100
CONFIDENCE_THRESHOLD = 0.65

DETECTION_ALGORITHMS = [
    "AIS Gap Detection",
    "Route Deviation",
    "Speed Anomaly",
    "Identity Switch",
]

NORMAL_SPEED_KNOTS = {"tanker": 12.0, "cargo": 15.0}
DEFAULT_NORMAL_SPEED_KNOTS = 10.0
SPEED_ANOMALY_KNOTS = 8.0

# Position history thresholds
HISTORY_GAP_HOURS = 4.0
MAX_PLAUSIBLE_SPEED_KNOTS = 50.0
MAX_SPEED_RANGE_KNOTS = 30.0
MIN_MOVING_FIXES = 3
SHARP_TURN_DEGREES = 90.0
MAX_SHARP_TURNS = 3
LOITER_MIN_FIXES = 5
LOITER_WINDOW = 10
LOITER_RADIUS_KM = 5.0
LOITER_MIN_HOURS = 8.0
KM_PER_DEGREE = 111.0

RECOMMENDATIONS = {
    Severity.critical: (
        "Immediate investigation required. Alert authorities and increase monitoring."
    ),
    Severity.high: "Priority investigation needed. Enhanced tracking recommended.",
    Severity.medium: "Monitor closely and investigate when resources permit.",
    Severity.low: "Continue routine monitoring with automated alerts.",
}


def ais_gap_severity(hours: float) -> Severity:
    if hours > 24:
        return Severity.critical
    if hours > 12:
        return Severity.high
    if hours > 6:
        return Severity.medium
    return Severity.low


def history_gap_severity(hours: float) -> Severity:
    # Gaps under four hours are never reported from history
    if hours > 24:
        return Severity.critical
    if hours > 12:
        return Severity.high
    return Severity.medium


def speed_anomaly_severity(difference: float) -> Severity:
    if difference > 20:
        return Severity.critical
    if difference > 15:
        return Severity.high
    if difference > 10:
        return Severity.medium
    return Severity.low


def route_deviation_severity(distance_km: float) -> Severity:
    if distance_km > 120:
        return Severity.critical
    if distance_km > 80:
        return Severity.high
    if distance_km > 40:
        return Severity.medium
    return Severity.low


def classify_alert(patterns: Sequence[BehaviorPattern]) -> GhostAlertType:
    """Alert type from the strongest signal among ``patterns``."""
    kinds = {p.pattern_type for p in patterns}
    if PatternType.ais_gap in kinds:
        return GhostAlertType.newly_dark
    if PatternType.identity_switch in kinds or PatternType.speed_anomaly in kinds:
        return GhostAlertType.sanction_evasion
    if PatternType.loitering in kinds:
        return GhostAlertType.illegal_fishing
    return GhostAlertType.suspicious_behavior


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


class GhostFleetDetectionService:
    """Detects vessels that go dark or behave like sanction evaders."""

    def __init__(
        self,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        rng: random.Random | None = None,
        clock: Clock = utcnow,
        data_service: DataIntegrationService | None = None,
        live_data: LiveDataService | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._bus = bus or get_event_bus()
        self._rng = rng or random.Random()
        self._clock = clock
        self._data = data_service or data_integration_service
        self._live_data = live_data or live_data_service
        self._history: dict[str, list[BehaviorPattern]] = {}
        self._alerts: list[GhostVesselAlert] = []
        self._ids = itertools.count(1)
        self._scanner = PeriodicTask(
            "ghost-fleet-scan",
            self.scan,
            self._settings.GHOST_FLEET_SCAN_INTERVAL_SECONDS,
        )

    def configure(self, settings: Settings) -> None:
        self._settings = settings
        self._scanner.interval = settings.GHOST_FLEET_SCAN_INTERVAL_SECONDS

    @property
    def alerts(self) -> list[GhostVesselAlert]:
        """Alerts from recent scans, newest first."""
        return list(self._alerts)

    @property
    def detection_running(self) -> bool:
        return self._scanner.is_running

    def history(self, vessel_id: str) -> list[BehaviorPattern]:
        return list(self._history.get(vessel_id, []))

    def _record(self, vessel_id: str, patterns: list[BehaviorPattern]) -> None:
        history = self._history.setdefault(vessel_id, [])
        history.extend(patterns)
        del history[:-HISTORY_LIMIT]

    def _pattern(
        self,
        vessel_id: str,
        pattern_type: PatternType,
        severity: Severity,
        confidence: float,
        location: tuple[float, float],
        description: str,
        evidence: dict[str, Any],
    ) -> BehaviorPattern:
        return BehaviorPattern(
            id=f"{pattern_type.value}-{vessel_id}-{next(self._ids)}",
            vessel_id=vessel_id,
            pattern_type=pattern_type,
            severity=severity,
            confidence=confidence,
            detected_at=self._clock(),
            location=location,
            description=description,
            evidence=evidence,
        )

    def _build_alert(
        self,
        vessel_id: str,
        vessel_name: str,
        location: tuple[float, float],
        patterns: list[BehaviorPattern],
    ) -> GhostVesselAlert:
        level = risk_level(patterns)
        return GhostVesselAlert(
            id=f"ghost-{vessel_id}-{next(self._ids)}",
            vessel_id=vessel_id,
            vessel_name=vessel_name,
            alert_type=classify_alert(patterns),
            risk_level=level,
            location=location,
            timestamp=self._clock(),
            patterns=patterns,
            recommendation=RECOMMENDATIONS[level],
        )

    # Snapshot detection

    def analyze_vessel(self, vessel: Vessel) -> list[BehaviorPattern]:
        """Run every snapshot detector against one vessel and record the hits."""
        now = self._clock()
        location = (vessel.lng, vessel.lat)
        patterns: list[BehaviorPattern] = []

        gap = age(vessel.last_update, now)
        if vessel.status == VesselStatus.dark or gap > SIGNAL_GAP:
            hours = _hours(gap)
            patterns.append(
                self._pattern(
                    vessel.id,
                    PatternType.ais_gap,
                    ais_gap_severity(hours),
                    0.85,
                    location,
                    "Vessel has turned off AIS transponder or signal lost",
                    {"time_gap": hours},
                )
            )

        # Simulated until historical routes are available
        if self._rng.random() > 0.85:
            distance = self._rng.random() * 100 + 50
            patterns.append(
                self._pattern(
                    vessel.id,
                    PatternType.route_deviation,
                    route_deviation_severity(distance),
                    0.72,
                    location,
                    "Vessel has deviated significantly from expected route",
                    {"deviation_distance": distance},
                )
            )

        normal = NORMAL_SPEED_KNOTS.get(vessel.vessel_type, DEFAULT_NORMAL_SPEED_KNOTS)
        difference = abs(vessel.speed - normal)
        if difference > SPEED_ANOMALY_KNOTS:
            patterns.append(
                self._pattern(
                    vessel.id,
                    PatternType.speed_anomaly,
                    speed_anomaly_severity(difference),
                    0.68,
                    location,
                    "Unusual speed changes detected",
                    {"speed_change": difference},
                )
            )

        # Simulated until a vessel registry lookup is available
        if self._rng.random() > 0.95:
            patterns.append(
                self._pattern(
                    vessel.id,
                    PatternType.identity_switch,
                    Severity.high,
                    0.91,
                    location,
                    "Potential vessel identity manipulation detected",
                    {"previous_identity": f"PREV-{vessel.id[-4:]}"},
                )
            )

        self._record(vessel.id, patterns)
        return patterns

    def detect_suspicious_behavior(self, vessels: Iterable[Vessel]) -> list[GhostVesselAlert]:
        alerts = []
        for vessel in vessels:
            patterns = self.analyze_vessel(vessel)
            if patterns:
                alerts.append(
                    self._build_alert(vessel.id, vessel.name, (vessel.lng, vessel.lat), patterns)
                )
        return alerts

    # Position history detection

    def _detect_history_gap(
        self, mmsi: str, fixes: list[VesselPosition]
    ) -> BehaviorPattern | None:
        max_gap = 0.0
        gap_start: datetime | None = None
        for previous, current in itertools.pairwise(fixes):
            hours = _hours(as_utc(current.timestamp_utc) - as_utc(previous.timestamp_utc))
            if hours > max_gap:
                max_gap = hours
                gap_start = previous.timestamp_utc

        if max_gap <= HISTORY_GAP_HOURS:
            return None
        last = fixes[-1]
        return self._pattern(
            mmsi,
            PatternType.ais_gap,
            history_gap_severity(max_gap),
            min(0.95, 0.6 + max_gap / 48),
            (last.longitude, last.latitude),
            f"AIS signal gap of {max_gap:.1f} hours detected",
            {"time_gap": max_gap, "gap_start": gap_start.isoformat() if gap_start else None},
        )

    def _detect_history_speed(
        self, mmsi: str, fixes: list[VesselPosition]
    ) -> BehaviorPattern | None:
        speeds = [fix.speed_knots for fix in fixes if fix.speed_knots > 0]
        if len(speeds) < MIN_MOVING_FIXES:
            return None

        max_speed, min_speed = max(speeds), min(speeds)
        avg_speed = sum(speeds) / len(speeds)
        impossible = max_speed > MAX_PLAUSIBLE_SPEED_KNOTS
        if not impossible and max_speed - min_speed <= MAX_SPEED_RANGE_KNOTS:
            return None

        last = fixes[-1]
        return self._pattern(
            mmsi,
            PatternType.speed_anomaly,
            Severity.critical if impossible else Severity.high,
            0.8,
            (last.longitude, last.latitude),
            f"Suspicious speed patterns: max {max_speed:.1f} kts, avg {avg_speed:.1f} kts",
            {
                "max_speed": max_speed,
                "avg_speed": avg_speed,
                "speed_variation": max_speed - min_speed,
            },
        )

    def _detect_history_course(
        self, mmsi: str, fixes: list[VesselPosition]
    ) -> BehaviorPattern | None:
        sharp_turns = 0
        for previous, current in itertools.pairwise(fixes):
            diff = abs(current.course_degrees - previous.course_degrees)
            if min(diff, 360 - diff) > SHARP_TURN_DEGREES:
                sharp_turns += 1

        if sharp_turns <= MAX_SHARP_TURNS:
            return None
        last = fixes[-1]
        return self._pattern(
            mmsi,
            PatternType.route_deviation,
            Severity.medium,
            0.7,
            (last.longitude, last.latitude),
            f"Multiple drastic course changes detected ({sharp_turns} times)",
            {"course_changes": sharp_turns},
        )

    def _detect_history_loitering(
        self, mmsi: str, fixes: list[VesselPosition]
    ) -> BehaviorPattern | None:
        if len(fixes) < LOITER_MIN_FIXES:
            return None

        window = fixes[-LOITER_WINDOW:]
        center_lat = sum(fix.latitude for fix in window) / len(window)
        center_lng = sum(fix.longitude for fix in window) / len(window)
        lng_scale = KM_PER_DEGREE * math.cos(math.radians(center_lat))
        radius = max(
            math.hypot(
                (fix.latitude - center_lat) * KM_PER_DEGREE,
                (fix.longitude - center_lng) * lng_scale,
            )
            for fix in window
        )
        duration = _hours(
            as_utc(window[-1].timestamp_utc) - as_utc(window[0].timestamp_utc)
        )

        if radius >= LOITER_RADIUS_KM or duration <= LOITER_MIN_HOURS:
            return None
        return self._pattern(
            mmsi,
            PatternType.loitering,
            Severity.medium,
            0.75,
            (center_lng, center_lat),
            f"Vessel loitering in {radius:.1f}km area for {duration:.1f} hours",
            {"loitering_radius": radius, "duration": duration},
        )

    def detect_position_patterns(
        self, mmsi: str, positions: Sequence[VesselPosition]
    ) -> list[BehaviorPattern]:
        """Run the history detectors over one vessel's fixes and record the hits."""
        patterns: list[BehaviorPattern] = []
        if len(positions) >= 2:
            fixes = sorted(positions, key=lambda fix: as_utc(fix.timestamp_utc))
            detectors = (
                self._detect_history_gap,
                self._detect_history_speed,
                self._detect_history_course,
                self._detect_history_loitering,
            )
            patterns = [pattern for detect in detectors if (pattern := detect(mmsi, fixes))]
        self._record(mmsi, patterns)
        return patterns

    def detect_from_positions(
        self, positions: Iterable[VesselPosition]
    ) -> list[GhostVesselAlert]:
        """Group fixes by MMSI and raise one alert per suspicious vessel."""
        by_mmsi: dict[str, list[VesselPosition]] = defaultdict(list)
        for position in positions:
            key = position.mmsi or position.vessel_id
            if key:
                by_mmsi[key].append(position)

        alerts = []
        for mmsi, fixes in by_mmsi.items():
            patterns = self.detect_position_patterns(mmsi, fixes)
            if not patterns:
                continue
            latest = max(fixes, key=lambda fix: as_utc(fix.timestamp_utc))
            name = next((f.vessel_name for f in fixes if f.vessel_name), None)
            alerts.append(
                self._build_alert(
                    mmsi,
                    name or f"MMSI-{mmsi}",
                    (latest.longitude, latest.latitude),
                    patterns,
                )
            )

        logger.bind(vessels=len(by_mmsi), alerts=len(alerts)).info(
            "Analyzed vessel position history"
        )
        return alerts

    async def analyze_recent_positions(self) -> list[GhostVesselAlert]:
        """History detection over the configured lookback window.

        Backend failures are logged and produce no alerts.
        """
        since = self._clock() - timedelta(hours=self._settings.GHOST_FLEET_LOOKBACK_HOURS)
        try:
            positions = await self._data.get_recent_positions(since)
        except (BackendError, BackendNotInitializedError) as e:
            logger.warning(f"Skipping position history detection: {e}")
            return []
        return self.detect_from_positions(positions)

    async def scan(self) -> list[GhostVesselAlert]:
        """Run both detectors and publish any alerts."""
        alerts = self.detect_suspicious_behavior(self._live_data.vessels())
        alerts.extend(await self.analyze_recent_positions())
        if alerts:
            self._alerts[:0] = alerts
            del self._alerts[MAX_RETAINED_ALERTS:]
            await self._bus.publish(EventTypes.GHOST_FLEET_DETECTED, {"alerts": alerts})
        return alerts

    # Reporting

    def detection_stats(self) -> DetectionStats:
        return DetectionStats(
            total_vessels_monitored=len(self._history),
            active_alerts=sum(len(patterns) for patterns in self._history.values()),
            detection_algorithms=list(DETECTION_ALGORITHMS),
            confidence_threshold=CONFIDENCE_THRESHOLD,
        )

    def export_detection_data(self) -> list[dict[str, Any]]:
        """Flatten the per-vessel pattern history for download."""
        exported_at = self._clock().isoformat()
        return [
            {**pattern.model_dump(mode="json"), "exported_at": exported_at}
            for patterns in self._history.values()
            for pattern in patterns
        ]

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        return self._bus.subscribe(EventTypes.GHOST_FLEET_DETECTED, handler)

    def start_detection(self) -> bool:
        return self._scanner.start()

    async def stop_detection(self) -> None:
        await self._scanner.stop()


ghost_fleet_service = GhostFleetDetectionService()


def get_ghost_fleet_service() -> GhostFleetDetectionService:
    """FastAPI dependency for the ghost fleet detection service singleton."""
    return ghost_fleet_service
