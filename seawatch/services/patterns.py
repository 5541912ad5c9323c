"""Behavior pattern recognition and threat assessment."""

import itertools
import random
from datetime import timedelta
from typing import Any

from seawatch.analysis.aggregation import (
    average_risk_score,
    categorize_risk,
    overall_risk_score,
)
from seawatch.analysis.filters import filter_patterns, is_stale
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.events import EventBus, EventTypes, get_event_bus
from seawatch.core.events.bus import EventHandler, Unsubscribe
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, utcnow
from seawatch.schemas.pattern import (
    AnalyticsMetrics,
    BehaviorPattern,
    PatternFilters,
    PatternType,
    ThreatAssessment,
    ThreatPrediction,
)
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import Vessel
from seawatch.services.periodic import PeriodicTask

NORMAL_SPEED_KNOTS = {
    "cargo": 14.0,
    "tanker": 12.0,
    "container": 18.0,
    "fishing": 8.0,
    "passenger": 20.0,
    "naval": 16.0,
}
DEFAULT_NORMAL_SPEED_KNOTS = 12.0
SPEED_ANOMALY_KNOTS = 8.0
MAX_PLAUSIBLE_SPEED_KNOTS = 40.0
STALE_AFTER = timedelta(hours=24)
ROUTE_DEVIATION_KM = 50.0
LOITER_SPEED_KNOTS = 2.0
SIMULATION_PROBABILITY = 0.2
SIMULATION_INTERVAL_SECONDS = 5.0

RECOMMENDATIONS = {
    Severity.critical: [
        "Immediate investigation required",
        "Alert maritime authorities",
        "Increase monitoring frequency",
        "Consider interception protocols",
    ],
    Severity.high: [
        "Enhanced surveillance recommended",
        "Coordinate with regional forces",
        "Prepare rapid response team",
    ],
    Severity.medium: [
        "Continue monitoring",
        "Review historical behavior",
        "Update risk assessment in 4 hours",
    ],
    Severity.low: [
        "Routine monitoring sufficient",
        "Automated alerts enabled",
    ],
}

DEFAULT_PREDICTION = ThreatPrediction(
    next_likely_action="Continue current course",
    confidence=0.7,
    timeframe="2-4 hours",
)


def is_sensitive_area(lat: float, lng: float) -> bool:
    """Waters near the equator and prime meridian."""
    return abs(lat) < 10 and abs(lng) < 10


def route_deviation_severity(distance_km: float) -> Severity:
    if distance_km > 150:
        return Severity.critical
    if distance_km > 100:
        return Severity.high
    return Severity.medium


class PatternRecognitionService:
    """Keeps recognized behavior patterns and derives threat assessments."""

    def __init__(
        self,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        rng: random.Random | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings or default_settings
        self._bus = bus or get_event_bus()
        self._rng = rng or random.Random()
        self._clock = clock
        self._patterns: list[BehaviorPattern] = []
        self._assessments: dict[str, ThreatAssessment] = {}
        self._ids = itertools.count(1)
        self._simulation = PeriodicTask(
            "pattern-recognition", self.simulate_once, SIMULATION_INTERVAL_SECONDS
        )

    def configure(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def max_retained(self) -> int:
        return self._settings.PATTERNS_MAX_RETAINED

    @property
    def patterns(self) -> list[BehaviorPattern]:
        return list(self._patterns)

    def _pattern(
        self,
        vessel: Vessel,
        pattern_type: PatternType,
        severity: Severity,
        confidence: float,
        description: str,
        evidence: dict[str, Any],
        risk_score: float,
    ) -> BehaviorPattern:
        return BehaviorPattern(
            id=f"{pattern_type.value}-{vessel.id}-{next(self._ids)}",
            vessel_id=vessel.id,
            pattern_type=pattern_type,
            severity=severity,
            confidence=min(1.0, confidence),
            detected_at=self._clock(),
            location=(vessel.lng, vessel.lat),
            description=description,
            evidence=evidence,
            risk_score=min(100.0, risk_score),
        )

    def detect_ais_manipulation(self, vessel: Vessel) -> BehaviorPattern | None:
        """Two or more implausible AIS fields suggest a spoofed transponder."""
        signals = [
            vessel.speed < 0 or vessel.speed > MAX_PLAUSIBLE_SPEED_KNOTS,
            not 0 < vessel.heading <= 360,
            is_stale(vessel.last_update, STALE_AFTER, self._clock()),
        ]
        count = sum(signals)
        if count < 2:
            return None
        return self._pattern(
            vessel,
            PatternType.ais_manipulation,
            Severity.critical if count >= 3 else Severity.high,
            0.85 + count * 0.05,
            "Multiple AIS data anomalies suggest potential signal manipulation",
            {"suspicious_signals": count, "last_update": vessel.last_update.isoformat()},
            count * 25,
        )

    def detect_route_deviation(self, vessel: Vessel) -> BehaviorPattern | None:
        # Simulated until expected routes are available
        deviation = self._rng.random() * 200
        if deviation <= ROUTE_DEVIATION_KM:
            return None
        return self._pattern(
            vessel,
            PatternType.route_deviation,
            route_deviation_severity(deviation),
            min(0.95, 0.6 + deviation / 200),
            f"Vessel deviated {deviation:.1f}km from expected route",
            {"deviation_distance": deviation},
            deviation * 0.5,
        )

    def detect_speed_anomaly(self, vessel: Vessel) -> BehaviorPattern | None:
        normal = NORMAL_SPEED_KNOTS.get(vessel.vessel_type, DEFAULT_NORMAL_SPEED_KNOTS)
        difference = abs(vessel.speed - normal)
        if difference <= SPEED_ANOMALY_KNOTS:
            return None
        if difference > 20:
            severity = Severity.critical
        elif difference > 15:
            severity = Severity.high
        else:
            severity = Severity.medium
        return self._pattern(
            vessel,
            PatternType.speed_anomaly,
            severity,
            min(0.9, 0.5 + difference / 30),
            f"Abnormal speed detected: {vessel.speed:.1f} knots (expected: {normal:.0f} knots)",
            {"current_speed": vessel.speed, "normal_speed": normal, "difference": difference},
            difference * 3,
        )

    def detect_loitering(self, vessel: Vessel) -> BehaviorPattern | None:
        if vessel.speed >= LOITER_SPEED_KNOTS or not is_sensitive_area(vessel.lat, vessel.lng):
            return None
        return self._pattern(
            vessel,
            PatternType.loitering,
            Severity.medium,
            0.75,
            "Vessel loitering in sensitive maritime area",
            {"speed": vessel.speed, "duration": "2+ hours"},
            45,
        )

    def detect_rendezvous(self, vessel: Vessel) -> BehaviorPattern | None:
        # Simulated until vessel proximity data is available
        if self._rng.random() <= 0.92:
            return None
        return self._pattern(
            vessel,
            PatternType.rendezvous,
            Severity.high,
            0.82,
            "Potential ship-to-ship transfer or rendezvous detected",
            {"nearby_vessels": 2, "duration": "45 minutes"},
            70,
        )

    def analyze_vessel(self, vessel: Vessel) -> list[BehaviorPattern]:
        """Run every recognizer against ``vessel`` without storing the results."""
        detectors = (
            self.detect_ais_manipulation,
            self.detect_route_deviation,
            self.detect_speed_anomaly,
            self.detect_loitering,
            self.detect_rendezvous,
        )
        return [pattern for detect in detectors if (pattern := detect(vessel))]

    async def add_pattern(self, pattern: BehaviorPattern) -> None:
        self._patterns.insert(0, pattern)
        del self._patterns[self.max_retained :]
        logger.bind(
            vessel_id=pattern.vessel_id, pattern_type=pattern.pattern_type.value
        ).debug("Behavior pattern recorded")
        await self._bus.publish(EventTypes.PATTERNS_CHANGED, {"patterns": self.patterns})

    def get_patterns(self, filters: PatternFilters | None = None) -> list[BehaviorPattern]:
        if filters is None:
            return self.patterns
        return filter_patterns(
            self._patterns,
            severity=filters.severity,
            pattern_type=filters.pattern_type,
            vessel_id=filters.vessel_id,
        )

    def threat_assessment(self, vessel_id: str) -> ThreatAssessment:
        """Assess one vessel from the patterns recorded against it."""
        vessel_patterns = filter_patterns(self._patterns, vessel_id=vessel_id)
        score = overall_risk_score(vessel_patterns)
        overall = categorize_risk(score)
        assessment = ThreatAssessment(
            vessel_id=vessel_id,
            overall_risk=overall,
            risk_score=score,
            patterns=vessel_patterns,
            predictions=DEFAULT_PREDICTION,
            recommendations=list(RECOMMENDATIONS[overall]),
        )
        self._assessments[vessel_id] = assessment
        return assessment

    def analytics_metrics(self) -> AnalyticsMetrics:
        return AnalyticsMetrics(
            total_patterns=len(self._patterns),
            critical_threats=sum(
                1 for p in self._patterns if p.severity == Severity.critical
            ),
            average_risk_score=average_risk_score(self._patterns),
        )

    async def simulate_once(self) -> list[BehaviorPattern]:
        """One simulation tick: a 20% chance of analyzing a random vessel."""
        if self._rng.random() <= 1 - SIMULATION_PROBABILITY:
            return []
        vessel = Vessel(
            id=f"vessel-{self._rng.getrandbits(36):09x}",
            name="Unidentified vessel",
            vessel_type=self._rng.choice(["cargo", "tanker", "fishing"]),
            speed=self._rng.random() * 30,
            heading=self._rng.random() * 360,
            lat=self._rng.uniform(-90, 90),
            lng=self._rng.uniform(-180, 180),
            last_update=self._clock(),
        )
        detected = self.analyze_vessel(vessel)
        for pattern in detected:
            await self.add_pattern(pattern)
        return detected

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        return self._bus.subscribe(EventTypes.PATTERNS_CHANGED, handler)

    def start_recognition(self) -> bool:
        return self._simulation.start()

    async def stop_recognition(self) -> None:
        await self._simulation.stop()


pattern_service = PatternRecognitionService()


def get_pattern_service() -> PatternRecognitionService:
    """FastAPI dependency for the pattern recognition service singleton."""
    return pattern_service
