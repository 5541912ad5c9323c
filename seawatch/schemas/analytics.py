"""Backend row schemas for alerts and analytics data."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from seawatch.schemas.shared import Severity


class AlertRecord(BaseModel):
    """A row of the backend ``alerts`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: Annotated[str, Field(min_length=1)]
    description: str | None = None
    severity: Severity
    type: str
    status: str = "new"
    vessel_id: str | None = None
    organization_id: str | None = None
    location: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None


class AnalyticsMetric(BaseModel):
    """A row of the backend ``analytics_data`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    metric_name: Annotated[str, Field(min_length=1)]
    metric_value: float
    dimensions: dict[str, Any] | None = None
    organization_id: str | None = None
    timestamp: datetime | None = None
