"""Vessel, position and AIS schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class VesselStatus(str, Enum):
    """Tracking status of a vessel on the dashboard map."""

    active = "active"
    warning = "warning"
    danger = "danger"
    dark = "dark"


class FocusMode(str, Enum):
    """Vessel filter presets."""

    all = "all"
    ghost = "ghost"
    arctic = "arctic"
    mediterranean = "mediterranean"


class SuspiciousActivity(BaseModel):
    """Flags raised against a vessel by detection heuristics."""

    ais_gap: bool = False
    route_deviation: bool = False
    speed_anomaly: bool = False
    identity_switch: bool = False


class Vessel(BaseModel):
    """A vessel as displayed on the live map."""

    id: Annotated[str, Field(description="Vessel identifier (IMO or MMSI)", min_length=1)]
    name: Annotated[str, Field(description="Vessel name")]
    lat: Annotated[float, Field(description="Latitude in degrees", ge=-90, le=90)]
    lng: Annotated[float, Field(description="Longitude in degrees", ge=-180, le=180)]
    speed: Annotated[float, Field(description="Speed over ground in knots")] = 0.0
    heading: Annotated[float, Field(description="Heading in degrees")] = 0.0
    status: Annotated[VesselStatus, Field(description="Tracking status")] = (
        VesselStatus.active
    )
    last_update: Annotated[datetime, Field(description="Time of the last AIS fix")]
    vessel_type: Annotated[str, Field(description="Vessel type label")] = "unknown"
    suspicious_activity: Annotated[
        SuspiciousActivity | None, Field(description="Detection flags")
    ] = None


class VesselRecord(BaseModel):
    """A row of the backend ``vessels`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    mmsi: Annotated[str, Field(description="Maritime Mobile Service Identity", min_length=1)]
    imo: str | None = None
    name: Annotated[str, Field(description="Registered vessel name")]
    call_sign: str | None = None
    vessel_type: str | None = None
    flag_country: str | None = None
    length: Annotated[float | None, Field(description="Length in meters", ge=0)] = None
    width: Annotated[float | None, Field(description="Beam in meters", ge=0)] = None
    gross_tonnage: Annotated[float | None, Field(ge=0)] = None
    organization_id: str | None = None
    is_active: bool = True


class VesselPosition(BaseModel):
    """A position fix from the backend ``vessel_positions`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    vessel_id: str | None = None
    mmsi: str | None = None
    latitude: Annotated[float, Field(ge=-90, le=90)]
    longitude: Annotated[float, Field(ge=-180, le=180)]
    speed_knots: Annotated[float, Field(description="Speed over ground")] = 0.0
    course_degrees: Annotated[float, Field(description="Course over ground")] = 0.0
    timestamp_utc: datetime
    source_feed: str | None = None
    vessel_name: str | None = None


class AISMessage(BaseModel):
    """A decoded AIS position report as delivered by the stream feed."""

    mmsi: Annotated[str, Field(min_length=1)]
    ship_name: str | None = None
    latitude: Annotated[float, Field(ge=-90, le=90)]
    longitude: Annotated[float, Field(ge=-180, le=180)]
    speed: float = 0.0
    course: float = 0.0
    timestamp: datetime
    vessel_type: str = "commercial"
