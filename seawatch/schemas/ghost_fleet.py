"""Ghost fleet detection schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

from seawatch.schemas.pattern import BehaviorPattern
from seawatch.schemas.shared import Severity


class GhostAlertType(str, Enum):
    """Classification of a ghost vessel alert."""

    newly_dark = "newly_dark"
    suspicious_behavior = "suspicious_behavior"
    sanction_evasion = "sanction_evasion"
    illegal_fishing = "illegal_fishing"


class GhostVesselAlert(BaseModel):
    """A vessel flagged by one or more ghost fleet detectors."""

    id: str
    vessel_id: str
    vessel_name: str
    alert_type: GhostAlertType
    risk_level: Severity
    location: Annotated[
        tuple[float, float], Field(description="Position as (lng, lat)")
    ]
    timestamp: datetime
    patterns: Annotated[list[BehaviorPattern], Field(min_length=1)]
    recommendation: str


class DetectionStats(BaseModel):
    """Ghost fleet detector statistics."""

    total_vessels_monitored: Annotated[int, Field(ge=0)]
    active_alerts: Annotated[int, Field(ge=0)]
    detection_algorithms: list[str]
    confidence_threshold: Annotated[float, Field(ge=0, le=1)] = 0.65
