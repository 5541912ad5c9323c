from fastapi import APIRouter

from seawatch.api.v1.endpoints.alerts import router as alerts_router
from seawatch.api.v1.endpoints.ghost_fleet import router as ghost_fleet_router
from seawatch.api.v1.endpoints.patterns import router as patterns_router
from seawatch.api.v1.endpoints.system import router as system_router
from seawatch.api.v1.endpoints.vessels import router as vessels_router
from seawatch.api.v1.endpoints.weather import router as weather_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(alerts_router)
api_router.include_router(ghost_fleet_router)
api_router.include_router(patterns_router)
api_router.include_router(system_router)
api_router.include_router(vessels_router)
api_router.include_router(weather_router)
