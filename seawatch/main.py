"""Application factory and lifespan."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from seawatch.api.v1.router import api_router
from seawatch.backend import backend
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.logging import configure_logging, logger
from seawatch.core.problems import register_problem_handlers
from seawatch.services.alerts import alerts_service
from seawatch.services.data_integration import data_integration_service
from seawatch.services.ghost_fleet import ghost_fleet_service
from seawatch.services.live_data import live_data_service
from seawatch.services.patterns import pattern_service
from seawatch.services.weather import weather_service


def configure_services(settings: Settings) -> None:
    """Point every service singleton at ``settings``."""
    for service in (
        alerts_service,
        data_integration_service,
        live_data_service,
        ghost_fleet_service,
        pattern_service,
        weather_service,
    ):
        service.configure(settings)


async def start_services(settings: Settings) -> None:
    alerts_service.connect_feeds()
    if not settings.SIMULATIONS_ENABLED:
        return
    alerts_service.start_simulation()
    live_data_service.start_feed()
    ghost_fleet_service.start_detection()
    pattern_service.start_recognition()


async def stop_services() -> None:
    await alerts_service.stop_simulation()
    await live_data_service.stop_feed()
    await ghost_fleet_service.stop_detection()
    await pattern_service.stop_recognition()
    alerts_service.disconnect_feeds()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to run with, defaults to the environment-loaded ones
    """
    app_settings = settings or default_settings
    configure_services(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(app_settings)
        backend.init(app_settings)
        await start_services(app_settings)
        logger.bind(environment=app_settings.ENVIRONMENT).info(
            f"{app_settings.PROJECT_NAME} {app_settings.VERSION} started"
        )
        try:
            yield
        finally:
            await stop_services()
            await backend.close()
            logger.info(f"{app_settings.PROJECT_NAME} stopped")

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    register_problem_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["System"], include_in_schema=False)
    async def liveness() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
