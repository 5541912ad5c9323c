"""Alert schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

from seawatch.schemas.shared import GeoPoint, Severity


class AlertType(str, Enum):
    """Category of an alert."""

    ghost_vessel = "ghost_vessel"
    weather = "weather"
    security = "security"
    collision = "collision"
    communication = "communication"
    equipment = "equipment"


class AlertStatus(str, Enum):
    """Workflow status of an alert."""

    new = "new"
    acknowledged = "acknowledged"
    investigating = "investigating"
    escalated = "escalated"
    resolved = "resolved"


class AlertSource(str, Enum):
    """Where an alert originated."""

    ai_detection = "ai_detection"
    manual = "manual"
    system = "system"
    satellite = "satellite"


class WeatherConditions(BaseModel):
    """Weather snapshot attached to weather-driven alerts."""

    wind_speed: float
    wave_height: float
    visibility: float
    temperature: float


class AlertMetadata(BaseModel):
    """Optional detection metadata attached to an alert."""

    vessel_id: str | None = None
    confidence: Annotated[float | None, Field(ge=0, le=1)] = None
    evidence_links: list[str] = Field(default_factory=list)
    weather_conditions: WeatherConditions | None = None


class Alert(BaseModel):
    """An operator-facing alert."""

    id: Annotated[str, Field(description="Alert identifier", min_length=1)]
    type: Annotated[AlertType, Field(description="Alert category")]
    severity: Annotated[Severity, Field(description="Alert severity")]
    title: Annotated[str, Field(description="Short title")]
    description: Annotated[str, Field(description="Alert description")] = ""
    location: Annotated[GeoPoint | None, Field(description="Where it happened")] = None
    timestamp: Annotated[datetime, Field(description="When the alert was raised")]
    status: Annotated[AlertStatus, Field(description="Workflow status")] = (
        AlertStatus.new
    )
    assignee: Annotated[str | None, Field(description="Assigned operator")] = None
    source: Annotated[AlertSource, Field(description="Alert origin")] = (
        AlertSource.system
    )
    metadata: Annotated[AlertMetadata | None, Field(description="Detection metadata")] = (
        None
    )


class AlertFilters(BaseModel):
    """Alert list filters. Unset filters match everything."""

    severity: Severity | None = None
    type: AlertType | None = None
    status: AlertStatus | None = None
    search: Annotated[
        str | None,
        Field(description="Case-insensitive match on title, description or location name"),
    ] = None


class AlertsMetrics(BaseModel):
    """Headline counters for the alerts center."""

    total: Annotated[int, Field(ge=0)] = 0
    new: Annotated[int, Field(ge=0)] = 0
    critical: Annotated[int, Field(ge=0)] = 0
    resolved: Annotated[int, Field(ge=0)] = 0
    avg_response_time: str = "2.4min"
    success_rate: str = "94.7%"


class AlertStatusUpdate(BaseModel):
    """Request body for changing an alert's status."""

    status: AlertStatus
    assignee: Annotated[str | None, Field(min_length=1)] = None


class ThreatAlert(BaseModel):
    """A short-lived threat raised by the live data feed."""

    id: str
    type: AlertType
    severity: Severity
    location: Annotated[
        tuple[float, float], Field(description="Position as (lng, lat)")
    ]
    description: str
    timestamp: datetime
