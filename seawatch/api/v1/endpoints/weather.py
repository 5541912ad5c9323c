"""Weather endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from seawatch.schemas.weather import WeatherData
from seawatch.services.weather import WeatherService, get_weather_service

router = APIRouter(prefix="/weather", tags=["Weather"])


@router.get(
    "",
    summary="Current weather",
    description="Current conditions at a position. Simulated when the provider is not configured or fails.",
)
async def get_weather(
    service: Annotated[WeatherService, Depends(get_weather_service)],
    lat: Annotated[float, Query(ge=-90, le=90, description="Latitude")],
    lng: Annotated[float, Query(ge=-180, le=180, description="Longitude")],
) -> WeatherData:
    return await service.get_current_weather(lat, lng)
