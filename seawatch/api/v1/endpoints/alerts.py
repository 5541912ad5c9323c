"""
Alert endpoints.

Filtering, metrics, status updates, reports and exports over the in-memory
alert list. Error responses follow RFC9457 format.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response

from seawatch.analysis.reports import to_csv
from seawatch.core.problems import AlertNotFoundError
from seawatch.schemas.alert import (
    Alert,
    AlertFilters,
    AlertsMetrics,
    AlertStatus,
    AlertStatusUpdate,
    AlertType,
)
from seawatch.schemas.report import DetectionExport, ReportConfig, ReportData
from seawatch.schemas.shared import OffsetPaginatedResponse, Severity
from seawatch.services.alerts import AlertsService, get_alerts_service

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get(
    "",
    summary="List alerts",
    description="List alerts newest first. Filters combine; search matches title, description and location name case-insensitively.",
)
async def list_alerts(
    service: Annotated[AlertsService, Depends(get_alerts_service)],
    severity: Annotated[Severity | None, Query(description="Filter by severity")] = None,
    alert_type: Annotated[
        AlertType | None, Query(alias="type", description="Filter by alert type")
    ] = None,
    status: Annotated[AlertStatus | None, Query(description="Filter by status")] = None,
    search: Annotated[
        str | None, Query(min_length=1, description="Free-text search")
    ] = None,
    limit: Annotated[
        int, Query(ge=1, le=100, description="Number of items to return")
    ] = 20,
    offset: Annotated[int, Query(ge=0, description="Number of items to skip")] = 0,
) -> OffsetPaginatedResponse[Alert]:
    alerts = service.get_alerts(
        AlertFilters(severity=severity, type=alert_type, status=status, search=search)
    )
    return OffsetPaginatedResponse(
        items=alerts[offset : offset + limit],
        total=len(alerts),
        limit=limit,
        offset=offset,
    )


@router.get("/metrics", summary="Alert metrics")
async def get_alert_metrics(
    service: Annotated[AlertsService, Depends(get_alerts_service)],
) -> AlertsMetrics:
    return service.get_metrics()


@router.get(
    "/export",
    summary="Export alerts",
    description="Export all alerts with summary counts, as JSON or as CSV.",
    response_model=DetectionExport,
)
async def export_alerts(
    service: Annotated[AlertsService, Depends(get_alerts_service)],
    fmt: Annotated[Literal["json", "csv"], Query(alias="format")] = "json",
) -> DetectionExport | Response:
    export = service.export_detection_data()
    if fmt == "csv":
        rows = [alert.model_dump(mode="json") for alert in export.alerts]
        return Response(content=to_csv(rows), media_type="text/csv")
    return export


@router.patch(
    "/{alert_id}/status",
    summary="Update alert status",
    description="Change an alert's workflow status and optionally its assignee.",
)
async def update_alert_status(
    alert_id: str,
    body: AlertStatusUpdate,
    service: Annotated[AlertsService, Depends(get_alerts_service)],
) -> Alert:
    alert = await service.update_alert_status(alert_id, body.status, body.assignee)
    if alert is None:
        raise AlertNotFoundError(detail=f"Alert {alert_id} not found")
    return alert


@router.post(
    "/reports",
    summary="Generate alert report",
    description="Summarize alerts in an inclusive date range. Filters set to 'all' or omitted do not narrow the report.",
)
async def create_report(
    config: ReportConfig,
    service: Annotated[AlertsService, Depends(get_alerts_service)],
) -> ReportData:
    return service.generate_report(config)
