"""Alerts service.

Holds the operator alert list in memory (newest first), publishes changes on
the event bus and turns ghost fleet detections and live data threats into
alerts.
"""

import itertools
import random
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from seawatch.analysis import reports
from seawatch.analysis.aggregation import alert_metrics
from seawatch.analysis.filters import filter_alerts
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.events import EventBus, EventTypes, get_event_bus
from seawatch.core.events.bus import Unsubscribe
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, utcnow
from seawatch.schemas.alert import (
    Alert,
    AlertFilters,
    AlertMetadata,
    AlertsMetrics,
    AlertSource,
    AlertStatus,
    AlertType,
    ThreatAlert,
)
from seawatch.schemas.ghost_fleet import GhostVesselAlert
from seawatch.schemas.report import DetectionExport, ReportConfig, ReportData
from seawatch.schemas.shared import GeoPoint, Severity
from seawatch.services.periodic import PeriodicTask

AlertsHandler = Callable[[dict[str, Any]], Awaitable[None]]

SIMULATION_PROBABILITY = 0.3

SIMULATED_TYPES = (
    AlertType.ghost_vessel,
    AlertType.weather,
    AlertType.security,
    AlertType.communication,
)

SIMULATED_DESCRIPTIONS = {
    AlertType.ghost_vessel: "Vessel went dark in restricted waters",
    AlertType.weather: "Storm system approaching maritime routes",
    AlertType.security: "Suspicious activity detected in port area",
    AlertType.communication: "Loss of communication with vessel fleet",
}

# First match wins
THREAT_TITLES = (
    ("AIS manipulation", "AIS Manipulation Detected"),
    ("vessel behavior", "Suspicious Vessel Behavior"),
    ("weather", "Severe Weather Alert"),
)
DEFAULT_THREAT_TITLE = "Maritime Alert"


def seed_alerts(clock: Clock = utcnow) -> list[Alert]:
    """Demo alerts shown before any feed has produced data."""
    now = clock()
    return [
        Alert(
            id="ALT-001",
            type=AlertType.security,
            severity=Severity.critical,
            title="Unauthorized Port Access",
            description=(
                "Unauthorized access detected in secure cargo area at Port of Rotterdam"
            ),
            location=GeoPoint(
                lat=51.9244, lng=4.4777, name="Port of Rotterdam - Terminal 3"
            ),
            timestamp=now - timedelta(minutes=2),
            status=AlertStatus.investigating,
            assignee="Agent Martinez",
            source=AlertSource.ai_detection,
            metadata=AlertMetadata(confidence=0.94),
        ),
        Alert(
            id="ALT-002",
            type=AlertType.ghost_vessel,
            severity=Severity.high,
            title="Vessel Route Deviation",
            description=(
                "MV Atlantic Star deviating from approved route without notification"
            ),
            location=GeoPoint(lat=55.0, lng=2.0, name="North Sea - Sector 7A"),
            timestamp=now - timedelta(minutes=8),
            status=AlertStatus.escalated,
            assignee="Agent Chen",
            source=AlertSource.ai_detection,
            metadata=AlertMetadata(vessel_id="IMO-001", confidence=0.87),
        ),
    ]


def title_from_description(description: str) -> str:
    for keyword, title in THREAT_TITLES:
        if keyword in description:
            return title
    return DEFAULT_THREAT_TITLE


class AlertsService:
    """In-memory alert store with change notifications."""

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
        self._alerts: list[Alert] = seed_alerts(clock)
        self._ids = itertools.count()
        self._feed_unsubscribers: list[Unsubscribe] = []
        self._simulation = PeriodicTask(
            "alerts-simulation",
            self.simulate_once,
            self._settings.ALERT_SIMULATION_INTERVAL_SECONDS,
        )

    def configure(self, settings: Settings) -> None:
        """Switch to ``settings``, taking effect from the next simulation tick."""
        self._settings = settings
        self._simulation.interval = settings.ALERT_SIMULATION_INTERVAL_SECONDS

    @property
    def max_retained(self) -> int:
        return self._settings.ALERTS_MAX_RETAINED

    @property
    def simulation_running(self) -> bool:
        return self._simulation.is_running

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    async def _notify(self) -> None:
        await self._bus.publish(EventTypes.ALERTS_CHANGED, {"alerts": list(self._alerts)})
        await self._bus.publish(
            EventTypes.ALERT_METRICS_CHANGED, {"metrics": self.get_metrics()}
        )

    async def add_alert(self, alert: Alert) -> None:
        """Insert ``alert`` at the front, dropping the oldest beyond the cap."""
        self._alerts.insert(0, alert)
        del self._alerts[self.max_retained :]
        logger.bind(alert_id=alert.id, severity=alert.severity.value).info(
            f"Alert added: {alert.title}"
        )
        await self._notify()

    async def update_alert_status(
        self,
        alert_id: str,
        status: AlertStatus,
        assignee: str | None = None,
    ) -> Alert | None:
        """Change an alert's status in place.

        Returns:
            The updated alert, or None when no alert has ``alert_id``
        """
        alert = next((a for a in self._alerts if a.id == alert_id), None)
        if alert is None:
            logger.bind(alert_id=alert_id).warning("Status update for unknown alert")
            return None

        alert.status = status
        if assignee:
            alert.assignee = assignee
        logger.bind(alert_id=alert_id, status=status.value).info("Alert status updated")
        await self._notify()
        return alert

    def get_alert(self, alert_id: str) -> Alert | None:
        return next((a for a in self._alerts if a.id == alert_id), None)

    def get_alerts(self, filters: AlertFilters | None = None) -> list[Alert]:
        return filter_alerts(self._alerts, filters)

    def get_metrics(self) -> AlertsMetrics:
        return alert_metrics(self._alerts)

    def generate_report(self, config: ReportConfig) -> ReportData:
        return reports.generate_report(self._alerts, config, self._clock())

    def export_detection_data(self) -> DetectionExport:
        return reports.export_detection_data(
            self._alerts, self._clock(), metrics=self.get_metrics()
        )

    async def subscribe(self, handler: AlertsHandler) -> Unsubscribe:
        """Register ``handler`` and deliver the current alerts to it at once."""
        unsubscribe = self._bus.subscribe(EventTypes.ALERTS_CHANGED, handler)
        await handler({"alerts": list(self._alerts)})
        return unsubscribe

    def subscribe_to_metrics(self, handler: AlertsHandler) -> Unsubscribe:
        return self._bus.subscribe(EventTypes.ALERT_METRICS_CHANGED, handler)

    # Cross-service feeds

    def connect_feeds(self) -> None:
        """Listen for ghost fleet detections and live data threats."""
        if self._feed_unsubscribers:
            return
        self._feed_unsubscribers = [
            self._bus.subscribe(EventTypes.GHOST_FLEET_DETECTED, self.on_ghost_fleet_alerts),
            self._bus.subscribe(EventTypes.LIVE_DATA_UPDATED, self.on_live_data),
        ]

    def disconnect_feeds(self) -> None:
        for unsubscribe in self._feed_unsubscribers:
            unsubscribe()
        self._feed_unsubscribers = []

    def from_ghost_alert(self, ghost_alert: GhostVesselAlert) -> Alert:
        lng, lat = ghost_alert.location
        return Alert(
            id=self._next_id("GF"),
            type=AlertType.ghost_vessel,
            severity=ghost_alert.risk_level,
            title=(
                f"{ghost_alert.alert_type.value.replace('_', ' ')} - "
                f"{ghost_alert.vessel_name}"
            ),
            description=(
                f"Vessel {ghost_alert.vessel_name} showing suspicious behavior patterns"
            ),
            location=GeoPoint(lat=lat, lng=lng, name=f"{lat:.2f}, {lng:.2f}"),
            timestamp=ghost_alert.timestamp,
            status=AlertStatus.new,
            source=AlertSource.ai_detection,
            metadata=AlertMetadata(
                vessel_id=ghost_alert.vessel_id,
                confidence=max(p.confidence for p in ghost_alert.patterns),
            ),
        )

    def from_threat_alert(self, threat: ThreatAlert) -> Alert:
        lng, lat = threat.location
        return Alert(
            id=self._next_id("SYS"),
            type=threat.type,
            severity=threat.severity,
            title=title_from_description(threat.description),
            description=threat.description,
            location=GeoPoint(lat=lat, lng=lng),
            timestamp=threat.timestamp,
            status=AlertStatus.new,
            source=AlertSource.system,
        )

    async def on_ghost_fleet_alerts(self, payload: dict[str, Any]) -> None:
        for ghost_alert in payload.get("alerts", []):
            await self.add_alert(self.from_ghost_alert(ghost_alert))

    async def on_live_data(self, payload: dict[str, Any]) -> None:
        for threat in payload.get("new_alerts", []):
            await self.add_alert(self.from_threat_alert(threat))

    # Simulation

    async def simulate_once(self) -> Alert | None:
        """One simulation tick: a 30% chance of a random alert."""
        if self._rng.random() >= SIMULATION_PROBABILITY:
            return None

        alert_type = self._rng.choice(SIMULATED_TYPES)
        severity = self._rng.choice(list(Severity))
        alert = Alert(
            id=self._next_id("AUTO"),
            type=alert_type,
            severity=severity,
            title=f"{alert_type.value.replace('_', ' ').title()} Alert",
            description=SIMULATED_DESCRIPTIONS[alert_type],
            location=GeoPoint(
                lat=self._rng.uniform(-90, 90), lng=self._rng.uniform(-180, 180)
            ),
            timestamp=self._clock(),
            status=AlertStatus.new,
            source=AlertSource.system,
        )
        await self.add_alert(alert)
        return alert

    def start_simulation(self) -> bool:
        return self._simulation.start()

    async def stop_simulation(self) -> None:
        await self._simulation.stop()


alerts_service = AlertsService()


def get_alerts_service() -> AlertsService:
    """FastAPI dependency for the alerts service singleton."""
    return alerts_service
