"""
System endpoints.

Backend health comes from the ``get_system_health`` RPC. In demo mode an
unreachable backend reports a demo record instead of failing.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from seawatch.core.config import Settings, get_settings
from seawatch.core.exceptions import BackendError, BackendNotInitializedError
from seawatch.core.problems import BackendUnavailableError
from seawatch.schemas.health import SystemHealth
from seawatch.services.data_integration import (
    DataIntegrationService,
    demo_system_health,
    fetch_or_fallback,
    get_data_integration_service,
)

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health", summary="Backend health")
async def get_system_health(
    data: Annotated[DataIntegrationService, Depends(get_data_integration_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SystemHealth:
    if settings.DEMO_MODE:
        return await fetch_or_fallback(
            data.get_system_health(), demo_system_health, "get_system_health"
        )
    try:
        return await data.get_system_health()
    except (BackendError, BackendNotInitializedError) as e:
        raise BackendUnavailableError(detail="System health is unavailable") from e
