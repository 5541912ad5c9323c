"""
Vessel endpoints.

Live vessels come from the in-memory registry; position history comes from
the backend. Error responses follow RFC9457 format.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from seawatch.analysis.filters import filter_vessels
from seawatch.core.config import Settings, get_settings
from seawatch.core.exceptions import (
    BackendError,
    BackendNotInitializedError,
    UnknownFocusModeError,
)
from seawatch.core.logging import logger
from seawatch.core.problems import (
    BackendUnavailableError,
    InternalServerError,
    InvalidFilterError,
    VesselNotFoundError,
)
from seawatch.schemas.shared import OffsetPaginatedResponse
from seawatch.schemas.vessel import FocusMode, Vessel, VesselPosition
from seawatch.services.data_integration import (
    DataIntegrationService,
    fetch_or_fallback,
    get_data_integration_service,
)
from seawatch.services.live_data import LiveDataService, get_live_data_service

router = APIRouter(prefix="/vessels", tags=["Vessels"])


@router.get(
    "",
    summary="List vessels",
    description="List live vessels narrowed by a focus mode preset (all, ghost, arctic, mediterranean).",
)
async def list_vessels(
    live_data: Annotated[LiveDataService, Depends(get_live_data_service)],
    focus_mode: Annotated[
        str, Query(description="Focus mode preset")
    ] = FocusMode.all.value,
    limit: Annotated[
        int, Query(ge=1, le=500, description="Number of items to return")
    ] = 100,
    offset: Annotated[int, Query(ge=0, description="Number of items to skip")] = 0,
) -> OffsetPaginatedResponse[Vessel]:
    try:
        vessels = filter_vessels(live_data.vessels(), focus_mode)
    except UnknownFocusModeError as e:
        raise InvalidFilterError(
            detail=str(e), allowed=[mode.value for mode in FocusMode]
        ) from e

    return OffsetPaginatedResponse(
        items=vessels[offset : offset + limit],
        total=len(vessels),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{vessel_id}/positions",
    summary="List vessel positions",
    description="Most recent position fixes for a vessel, newest first.",
)
async def list_vessel_positions(
    vessel_id: str,
    data: Annotated[DataIntegrationService, Depends(get_data_integration_service)],
    live_data: Annotated[LiveDataService, Depends(get_live_data_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[
        int, Query(ge=1, le=1000, description="Number of positions to return")
    ] = 100,
) -> list[VesselPosition]:
    try:
        call = data.get_vessel_positions(vessel_id, limit=limit)
        if settings.DEMO_MODE:
            positions = await fetch_or_fallback(call, list, "get_vessel_positions")
        else:
            try:
                positions = await call
            except (BackendError, BackendNotInitializedError) as e:
                raise BackendUnavailableError(
                    detail="Vessel positions are unavailable"
                ) from e

        if not positions and live_data.get_vessel(vessel_id) is None:
            raise VesselNotFoundError(detail=f"Vessel {vessel_id} not found")
        return positions
    except (BackendUnavailableError, VesselNotFoundError):
        raise
    except Exception as e:
        logger.error(f"Failed to list positions for vessel {vessel_id}: {e}")
        raise InternalServerError(detail="Failed to list vessel positions") from e
