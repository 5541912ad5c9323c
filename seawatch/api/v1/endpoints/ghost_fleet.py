"""Ghost fleet detection endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from seawatch.schemas.ghost_fleet import DetectionStats, GhostVesselAlert
from seawatch.schemas.shared import Severity
from seawatch.services.ghost_fleet import (
    GhostFleetDetectionService,
    get_ghost_fleet_service,
)

router = APIRouter(prefix="/ghost-fleet", tags=["Ghost Fleet"])


@router.get(
    "/alerts",
    summary="List ghost vessel alerts",
    description="Alerts raised by recent detection scans, newest first.",
)
async def list_ghost_alerts(
    service: Annotated[GhostFleetDetectionService, Depends(get_ghost_fleet_service)],
    risk_level: Annotated[
        Severity | None, Query(description="Filter by risk level")
    ] = None,
) -> list[GhostVesselAlert]:
    alerts = service.alerts
    if risk_level is not None:
        alerts = [alert for alert in alerts if alert.risk_level == risk_level]
    return alerts


@router.get("/stats", summary="Detection statistics")
async def get_detection_stats(
    service: Annotated[GhostFleetDetectionService, Depends(get_ghost_fleet_service)],
) -> DetectionStats:
    return service.detection_stats()
