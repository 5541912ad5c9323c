"""Core configuration module."""

from fastapi import Request
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All configuration is loaded from environment variables following 12-factor app principles.
    Backend connection and simulation cadence are consolidated here for a single source of truth.

    Attributes:
        PROJECT_NAME: Name of the project
        VERSION: Project version
        ENVIRONMENT: Application environment (production, development, testing)
        BACKEND_URL: Base URL of the hosted Postgres-as-a-service backend
        BACKEND_API_KEY: Anonymous/service key sent with every backend request
        BACKEND_TIMEOUT_SECONDS: Timeout for a single backend request
        WEATHER_API_URL: Base URL of the OpenWeather-compatible provider
        WEATHER_API_KEY: Weather provider key (empty means simulated weather)
        DEMO_MODE: Serve demo data when the backend is unreachable
        SIMULATIONS_ENABLED: Run the background simulation loops
        ALERTS_MAX_RETAINED: Number of newest alerts kept in memory
        ALERT_SIMULATION_INTERVAL_SECONDS: Tick of the alert simulation
        LIVE_FEED_INTERVAL_SECONDS: Tick of the live data feed simulation
        GHOST_FLEET_SCAN_INTERVAL_SECONDS: Interval between ghost-fleet scans
        GHOST_FLEET_LOOKBACK_HOURS: Window of positions analysed per scan
        POSITION_RETENTION_DAYS: Default retention for cleanup_old_positions
        PATTERNS_MAX_RETAINED: Number of newest behavior patterns kept in memory
    """

    PROJECT_NAME: str = "SeaWatch"
    VERSION: str = "0.1.0"

    # Environment
    ENVIRONMENT: str = Field(
        default="production",
        description="Application environment (production, development, testing).",
    )

    # Backend
    BACKEND_URL: str = Field(
        default="http://localhost:54321",
        description="Base URL of the hosted backend (table and RPC endpoints)",
    )
    BACKEND_API_KEY: str = Field(
        default="",
        description="Key sent as apikey and bearer token to the backend",
    )
    BACKEND_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout in seconds for a single backend request",
    )

    # Weather provider
    WEATHER_API_URL: str = Field(
        default="https://api.openweathermap.org/data/2.5",
        description="OpenWeather-compatible API base URL",
    )
    WEATHER_API_KEY: str = Field(
        default="",
        description="Weather API key. Leave empty to use simulated weather.",
    )

    DEMO_MODE: bool = Field(
        default=True,
        description="Fall back to demo records when the backend cannot be reached",
    )
    SIMULATIONS_ENABLED: bool = Field(
        default=True,
        description="Start the alert, live feed, detection and pattern loops on startup",
    )

    # Alerts
    ALERTS_MAX_RETAINED: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Number of newest alerts kept in memory",
    )
    ALERT_SIMULATION_INTERVAL_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between alert simulation ticks",
    )

    # Live data and detection
    LIVE_FEED_INTERVAL_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between live data feed ticks",
    )
    GHOST_FLEET_SCAN_INTERVAL_SECONDS: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between ghost-fleet detection scans",
    )
    GHOST_FLEET_LOOKBACK_HOURS: int = Field(
        default=24,
        ge=1,
        le=720,
        description="Hours of position history analysed per scan",
    )
    POSITION_RETENTION_DAYS: int = Field(
        default=30,
        ge=1,
        description="Default days_to_keep for the cleanup_old_positions RPC",
    )
    PATTERNS_MAX_RETAINED: int = Field(
        default=1000,
        ge=1,
        description="Number of newest behavior patterns kept in memory",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level for loguru")
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(default="logs/seawatch.log", description="Path to log file")
    log_retention: str = Field(
        default="10 days",
        description="Log file retention policy",
    )
    log_rotation: str = Field(default="10 MB", description="Log file rotation policy")

    @property
    def backend_rest_url(self) -> str:
        """Get the base URL for table and RPC requests.

        Returns:
            str: Backend REST URL without a trailing slash
        """
        return f"{self.BACKEND_URL.rstrip('/')}/rest/v1"

    @property
    def weather_enabled(self) -> bool:
        """Whether live weather lookups are possible."""
        return bool(self.WEATHER_API_KEY)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


def get_settings(request: Request) -> Settings:
    """FastAPI dependency for the settings the running app was created with."""
    return getattr(request.app.state, "settings", settings)
