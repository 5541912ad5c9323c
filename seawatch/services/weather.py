"""Current weather lookups with a simulated fallback.

Conditions come from an OpenWeather-compatible ``/weather`` endpoint. With no
API key configured, a non-2xx response or a transport error, a plausible
reading is simulated from a latitude temperature model instead.
"""

import random
from typing import Any

import httpx

from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, utcnow
from seawatch.schemas.weather import WeatherData

# (group, description)
SIMULATED_CONDITIONS = (
    ("Clear", "clear sky"),
    ("Clouds", "few clouds"),
    ("Clouds", "scattered clouds"),
    ("Rain", "light rain"),
    ("Thunderstorm", "thunderstorm"),
)


def base_temperature(lat: float) -> float:
    """Typical sea-level air temperature in Celsius for a latitude."""
    abs_lat = abs(lat)
    if abs_lat < 23.5:
        return 27 - abs_lat * 0.2
    if abs_lat < 45:
        return 20 - (abs_lat - 23.5) * 0.5
    if abs_lat < 66.5:
        return 10 - (abs_lat - 45) * 0.7
    return -10 - (abs_lat - 66.5) * 0.3


def location_label(lat: float, lng: float) -> str:
    return f"{lat:.2f}, {lng:.2f}"


class WeatherService:
    """Fetches current conditions for a position."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings or default_settings
        self._transport = transport
        self._rng = rng or random.Random()
        self._clock = clock

    def configure(self, settings: Settings) -> None:
        self._settings = settings

    async def get_current_weather(self, lat: float, lng: float) -> WeatherData:
        if not self._settings.weather_enabled:
            return self.simulate(lat, lng)

        params = {
            "lat": lat,
            "lon": lng,
            "appid": self._settings.WEATHER_API_KEY,
            "units": "metric",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.WEATHER_API_URL,
                timeout=self._settings.BACKEND_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.get("/weather", params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching weather data, using simulated data: {e}")
            return self.simulate(lat, lng)

        if response.is_error:
            logger.bind(status_code=response.status_code).warning(
                "Weather API error, falling back to simulated data"
            )
            return self.simulate(lat, lng)

        try:
            return self._from_provider(response.json(), lat, lng)
        except (ValueError, TypeError, AttributeError) as e:
            # pydantic's ValidationError is a ValueError
            logger.warning(f"Unusable weather payload, using simulated data: {e}")
            return self.simulate(lat, lng)

    def _from_provider(self, body: Any, lat: float, lng: float) -> WeatherData:
        if not isinstance(body, dict):
            raise TypeError(f"expected a JSON object, got {type(body).__name__}")
        main = body.get("main") or {}
        conditions = (body.get("weather") or [{}])[0] or {}
        wind = body.get("wind") or {}
        return WeatherData(
            location=body.get("name") or location_label(lat, lng),
            latitude=lat,
            longitude=lng,
            temperature=main.get("temp", 0.0),
            pressure=main.get("pressure", 0.0),
            humidity=main.get("humidity", 0.0),
            conditions=conditions.get("main", "Unknown"),
            description=conditions.get("description", ""),
            wind_speed=wind.get("speed", 0.0),
            wind_direction=wind.get("deg", 0.0),
            visibility=body.get("visibility", 0.0),
            cloud_cover=(body.get("clouds") or {}).get("all", 0.0),
            simulated=False,
            observed_at=self._clock(),
        )

    def simulate(self, lat: float, lng: float) -> WeatherData:
        """Plausible conditions for a position, ±5°C around the latitude model."""
        rng = self._rng
        group, description = rng.choice(SIMULATED_CONDITIONS)

        if group == "Thunderstorm":
            wind_speed = 15 + rng.random() * 15
            visibility = 500 + rng.random() * 2000
        elif group == "Rain":
            wind_speed = 8 + rng.random() * 10
            visibility = 1000 + rng.random() * 4000
        else:
            wind_speed = rng.random() * 10
            visibility = 10000.0

        return WeatherData(
            location=location_label(lat, lng),
            latitude=lat,
            longitude=lng,
            temperature=base_temperature(lat) + (rng.random() - 0.5) * 10,
            pressure=1013 + (rng.random() - 0.5) * 40,
            humidity=60 + rng.random() * 30,
            conditions=group,
            description=description,
            wind_speed=wind_speed,
            wind_direction=rng.random() * 360,
            visibility=round(visibility),
            cloud_cover=rng.random() * 20 if group == "Clear" else 50 + rng.random() * 50,
            simulated=True,
            observed_at=self._clock(),
        )


weather_service = WeatherService()


def get_weather_service() -> WeatherService:
    """FastAPI dependency for the weather service singleton."""
    return weather_service
