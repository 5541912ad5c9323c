"""Weather schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field


class WeatherData(BaseModel):
    """Current conditions at a position."""

    location: Annotated[str, Field(description="Location label")]
    latitude: Annotated[float, Field(ge=-90, le=90)]
    longitude: Annotated[float, Field(ge=-180, le=180)]
    temperature: Annotated[float, Field(description="Air temperature in Celsius")]
    pressure: Annotated[float, Field(description="Pressure in hPa")]
    humidity: Annotated[float, Field(description="Relative humidity percent", ge=0, le=100)]
    conditions: Annotated[str, Field(description="Condition group, e.g. Rain")]
    description: str
    wind_speed: Annotated[float, Field(description="Wind speed in m/s", ge=0)]
    wind_direction: Annotated[float, Field(description="Wind direction in degrees")]
    visibility: Annotated[float, Field(description="Visibility in meters", ge=0)]
    cloud_cover: Annotated[float, Field(description="Cloud cover percent", ge=0, le=100)]
    simulated: Annotated[
        bool, Field(description="True when generated instead of fetched")
    ] = False
    observed_at: datetime
