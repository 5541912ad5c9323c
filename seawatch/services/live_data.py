"""Live vessel registry fed by AIS position reports.

Vessels are upserted by MMSI. Until the first AIS report arrives, and while
demo mode is on, a fixed demo fleet stands in. The feed loop also raises
short-lived threat alerts that expire after a day.
"""

import itertools
import random
from datetime import datetime, timedelta

from seawatch.analysis.filters import filter_vessels, is_stale, within_age
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.events import EventBus, EventTypes, get_event_bus
from seawatch.core.events.bus import EventHandler, Unsubscribe
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, utcnow
from seawatch.schemas.alert import AlertType, ThreatAlert
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import (
    AISMessage,
    FocusMode,
    SuspiciousActivity,
    Vessel,
    VesselStatus,
)
from seawatch.services.periodic import PeriodicTask

DARK_AFTER = timedelta(minutes=30)
WARNING_SPEED_KNOTS = 30.0
THREAT_TTL = timedelta(hours=24)
MAX_THREAT_ALERTS = 5
THREAT_PROBABILITY = 0.1

# (type, description, severities to pick from)
THREAT_TEMPLATES: tuple[tuple[AlertType, str, tuple[Severity, ...]], ...] = (
    (
        AlertType.ghost_vessel,
        "AI detected vessel AIS manipulation pattern",
        (Severity.high, Severity.critical),
    ),
    (
        AlertType.ghost_vessel,
        "AI detected suspicious vessel behavior",
        (Severity.high,),
    ),
    (
        AlertType.security,
        "Unusual vessel behavior detected by ML algorithms",
        (Severity.high,),
    ),
    (AlertType.weather, "Severe weather conditions detected", (Severity.medium,)),
)


def determine_status(message: AISMessage, now: datetime) -> VesselStatus:
    """Status of a vessel from its latest AIS report."""
    if is_stale(message.timestamp, DARK_AFTER, now):
        return VesselStatus.dark
    if message.speed > WARNING_SPEED_KNOTS:
        return VesselStatus.warning
    return VesselStatus.active


def generate_demo_fleet(rng: random.Random, clock: Clock = utcnow) -> list[Vessel]:
    """Five demo vessels: two merchants, two dark ghosts and an Arctic researcher."""
    now = clock()

    def jitter(spread: float) -> float:
        return (rng.random() - 0.5) * spread

    return [
        Vessel(
            id="IMO-001",
            name="MV Atlantic Cargo",
            lat=40.7128 + jitter(0.1),
            lng=-74.0060 + jitter(0.1),
            speed=12 + rng.random() * 8,
            heading=rng.random() * 360,
            status=VesselStatus.active,
            last_update=now,
            vessel_type="cargo",
            suspicious_activity=SuspiciousActivity(
                route_deviation=rng.random() > 0.9,
                speed_anomaly=rng.random() > 0.85,
            ),
        ),
        Vessel(
            id="IMO-002",
            name="Tanker Pacific Star",
            lat=35.6762 + jitter(0.1),
            lng=139.6503 + jitter(0.1),
            speed=8 + rng.random() * 6,
            heading=rng.random() * 360,
            status=VesselStatus.warning if rng.random() > 0.8 else VesselStatus.active,
            last_update=now,
            vessel_type="tanker",
            suspicious_activity=SuspiciousActivity(
                ais_gap=rng.random() > 0.95,
                route_deviation=rng.random() > 0.8,
                speed_anomaly=rng.random() > 0.9,
                identity_switch=rng.random() > 0.98,
            ),
        ),
        Vessel(
            id="UNKNOWN-003",
            name="Ghost Vessel Alpha",
            lat=51.5074 + jitter(0.2),
            lng=-0.1278 + jitter(0.2),
            speed=0,
            heading=0,
            status=VesselStatus.dark,
            last_update=now - timedelta(hours=2),
            vessel_type="unknown",
            suspicious_activity=SuspiciousActivity(
                ais_gap=True,
                route_deviation=True,
                speed_anomaly=True,
                identity_switch=rng.random() > 0.7,
            ),
        ),
        Vessel(
            id="UNKNOWN-004",
            name="Shadow Runner",
            lat=25.2048 + jitter(0.15),
            lng=55.2708 + jitter(0.15),
            speed=rng.random() * 5,
            heading=rng.random() * 360,
            status=VesselStatus.dark,
            last_update=now - timedelta(hours=6),
            vessel_type="fishing",
            suspicious_activity=SuspiciousActivity(
                ais_gap=True,
                route_deviation=True,
                identity_switch=True,
            ),
        ),
        Vessel(
            id="IMO-005",
            name="Northern Explorer",
            lat=70.2 + jitter(0.1),
            lng=-150.0 + jitter(0.1),
            speed=6 + rng.random() * 4,
            heading=rng.random() * 360,
            status=VesselStatus.warning if rng.random() > 0.7 else VesselStatus.active,
            last_update=now,
            vessel_type="research",
            suspicious_activity=SuspiciousActivity(
                route_deviation=rng.random() > 0.8,
            ),
        ),
    ]


class LiveDataService:
    """Tracks vessels and transient threat alerts."""

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
        self._tracked: dict[str, Vessel] = {}
        self._demo_fleet: list[Vessel] | None = None
        self._threats: list[ThreatAlert] = []
        self._ids = itertools.count(1)
        self._feed = PeriodicTask(
            "live-data-feed", self.tick, self._settings.LIVE_FEED_INTERVAL_SECONDS
        )

    def configure(self, settings: Settings) -> None:
        self._settings = settings
        self._feed.interval = settings.LIVE_FEED_INTERVAL_SECONDS

    @property
    def feed_running(self) -> bool:
        return self._feed.is_running

    @property
    def threat_alerts(self) -> list[ThreatAlert]:
        return list(self._threats)

    def vessels(self, focus_mode: FocusMode | str = FocusMode.all) -> list[Vessel]:
        """Current vessels narrowed by a focus mode preset."""
        if self._tracked:
            current = list(self._tracked.values())
        elif self._settings.DEMO_MODE:
            if self._demo_fleet is None:
                self._demo_fleet = generate_demo_fleet(self._rng, self._clock)
            current = list(self._demo_fleet)
        else:
            current = []
        return filter_vessels(current, focus_mode)

    def get_vessel(self, vessel_id: str) -> Vessel | None:
        return next((v for v in self.vessels() if v.id == vessel_id), None)

    async def update_vessel_from_ais(self, message: AISMessage) -> Vessel:
        """Upsert the vessel described by an AIS report and notify subscribers."""
        vessel = Vessel(
            id=message.mmsi,
            name=message.ship_name or f"MMSI-{message.mmsi}",
            lat=message.latitude,
            lng=message.longitude,
            speed=message.speed,
            heading=message.course,
            status=determine_status(message, self._clock()),
            last_update=message.timestamp,
            vessel_type=message.vessel_type,
        )
        is_new = vessel.id not in self._tracked
        self._tracked[vessel.id] = vessel
        logger.bind(mmsi=message.mmsi, status=vessel.status.value).debug(
            "Vessel added from AIS" if is_new else "Vessel updated from AIS"
        )
        await self._publish([])
        return vessel

    def generate_threat_alert(self) -> ThreatAlert:
        alert_type, description, severities = self._rng.choice(THREAT_TEMPLATES)
        return ThreatAlert(
            id=f"THREAT-{next(self._ids)}",
            type=alert_type,
            severity=self._rng.choice(severities),
            location=(self._rng.uniform(-180, 180), self._rng.uniform(-90, 90)),
            description=description,
            timestamp=self._clock(),
        )

    def expire_threat_alerts(self) -> int:
        """Drop threat alerts older than a day. Returns how many were dropped."""
        before = len(self._threats)
        self._threats = within_age(self._threats, THREAT_TTL, self._clock())
        return before - len(self._threats)

    async def tick(self) -> list[ThreatAlert]:
        """One feed tick: maybe raise a threat, then expire old ones."""
        new_alerts: list[ThreatAlert] = []
        if (
            self._rng.random() < THREAT_PROBABILITY
            and len(self._threats) < MAX_THREAT_ALERTS
        ):
            threat = self.generate_threat_alert()
            self._threats.append(threat)
            new_alerts.append(threat)
            logger.bind(threat_id=threat.id, type=threat.type.value).info(
                f"Threat alert raised: {threat.description}"
            )

        expired = self.expire_threat_alerts()
        if expired:
            logger.debug(f"Expired {expired} threat alert(s)")

        if new_alerts:
            await self._publish(new_alerts)
        return new_alerts

    async def _publish(self, new_alerts: list[ThreatAlert]) -> None:
        await self._bus.publish(
            EventTypes.LIVE_DATA_UPDATED,
            {
                "vessels": self.vessels(),
                "alerts": self.threat_alerts,
                "new_alerts": new_alerts,
                "timestamp": self._clock(),
            },
        )

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        return self._bus.subscribe(EventTypes.LIVE_DATA_UPDATED, handler)

    def start_feed(self) -> bool:
        started = self._feed.start()
        if started:
            logger.info("Live data feed started")
        return started

    async def stop_feed(self) -> None:
        await self._feed.stop()


live_data_service = LiveDataService()


def get_live_data_service() -> LiveDataService:
    """FastAPI dependency for the live data service singleton."""
    return live_data_service
