"""Shared schema types used across resources."""

from enum import Enum
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Severity scale shared by alerts, patterns and risk levels."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.low: 1,
    Severity.medium: 2,
    Severity.high: 3,
    Severity.critical: 4,
}


class GeoPoint(BaseModel):
    """A latitude/longitude pair with an optional place name."""

    lat: Annotated[float, Field(description="Latitude in degrees", ge=-90, le=90)]
    lng: Annotated[float, Field(description="Longitude in degrees", ge=-180, le=180)]
    name: Annotated[str | None, Field(description="Human readable place name")] = None


T = TypeVar("T")


class OffsetPaginatedResponse(BaseModel, Generic[T]):
    """Offset paginated list envelope."""

    items: list[T]
    total: Annotated[int, Field(description="Total matching items", ge=0)]
    limit: Annotated[int, Field(description="Page size", ge=1)]
    offset: Annotated[int, Field(description="Items skipped", ge=0)]
