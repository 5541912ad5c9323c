"""Backend data integration service.

Typed wrappers over the backend tables (``vessels``, ``vessel_positions``,
``alerts``, ``analytics_data``) and RPC functions. Every method raises
:class:`~seawatch.core.exceptions.BackendError` on failure; dashboard-facing
callers wrap calls in :func:`fetch_or_fallback`.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from seawatch.analysis.reports import to_csv
from seawatch.backend.client import BackendClientManager, backend, eq, gte, lte
from seawatch.core.config import Settings, settings as default_settings
from seawatch.core.exceptions import BackendError, BackendNotInitializedError
from seawatch.core.logging import logger
from seawatch.core.timeutils import Clock, utcnow
from seawatch.schemas.analytics import AlertRecord, AnalyticsMetric
from seawatch.schemas.health import SystemHealth
from seawatch.schemas.vessel import VesselPosition, VesselRecord

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

VESSELS = "vessels"
POSITIONS = "vessel_positions"
ALERTS = "alerts"
ANALYTICS = "analytics_data"


def _payload(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", exclude_none=True)


def _validate(model: type[M], row: Any, operation: str) -> M:
    try:
        return model.model_validate(row)
    except ValidationError as e:
        logger.bind(operation=operation).error(f"Backend row failed validation: {e}")
        raise BackendError(operation, f"invalid {model.__name__} row") from e


def _validate_all(model: type[M], rows: list[Any], operation: str) -> list[M]:
    return [_validate(model, row, operation) for row in rows]


def _single(rows: list[dict[str, Any]], operation: str, model: type[M]) -> M:
    if not rows:
        raise BackendError(operation, "no row returned")
    return _validate(model, rows[0], operation)


def _position_from_row(row: dict[str, Any], operation: str) -> VesselPosition:
    if not isinstance(row, dict):
        raise BackendError(operation, "unexpected row shape")
    # Embedded vessel columns arrive as a nested object
    embedded = row.get("vessels") or {}
    data = {key: value for key, value in row.items() if key != "vessels"}
    if not data.get("vessel_name") and isinstance(embedded, dict):
        data["vessel_name"] = embedded.get("name")
    return _validate(VesselPosition, data, operation)


class DataIntegrationService:
    """Reads and writes dashboard data in the hosted backend."""

    def __init__(
        self,
        manager: BackendClientManager | None = None,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._backend = manager or backend
        self._settings = settings or default_settings
        self._clock = clock

    def configure(self, settings: Settings) -> None:
        self._settings = settings

    # Vessels

    async def create_vessel(self, vessel: VesselRecord) -> VesselRecord:
        rows = await self._backend.insert(VESSELS, _payload(vessel))
        return _single(rows, "create_vessel", VesselRecord)

    async def get_vessels(self, organization_id: str | None = None) -> list[VesselRecord]:
        """Active vessels, optionally for one organization."""
        filters = [("is_active", eq(True))]
        if organization_id:
            filters.append(("organization_id", eq(organization_id)))
        rows = await self._backend.select(VESSELS, filters)
        return _validate_all(VesselRecord, rows, "get_vessels")

    async def update_vessel(
        self, vessel_id: str, updates: dict[str, Any]
    ) -> VesselRecord | None:
        rows = await self._backend.update(VESSELS, updates, [("id", eq(vessel_id))])
        return _validate(VesselRecord, rows[0], "update_vessel") if rows else None

    async def import_vessels(self, vessels: list[VesselRecord]) -> list[VesselRecord]:
        """Bulk upsert keyed on MMSI."""
        if not vessels:
            return []
        rows = await self._backend.upsert(
            VESSELS, [_payload(v) for v in vessels], on_conflict="mmsi"
        )
        logger.bind(count=len(rows)).info("Imported vessel records")
        return _validate_all(VesselRecord, rows, "import_vessels")

    # Positions

    async def add_vessel_position(self, position: VesselPosition) -> VesselPosition:
        rows = await self._backend.insert(
            POSITIONS, _payload(position.model_copy(update={"vessel_name": None}))
        )
        return _single(rows, "add_vessel_position", VesselPosition)

    async def get_vessel_positions(
        self, vessel_id: str, limit: int = 100
    ) -> list[VesselPosition]:
        """Newest positions first for one vessel."""
        rows = await self._backend.select(
            POSITIONS,
            [("vessel_id", eq(vessel_id))],
            order="timestamp_utc.desc",
            limit=limit,
        )
        return [_position_from_row(row, "get_vessel_positions") for row in rows]

    async def get_recent_positions(self, since: datetime) -> list[VesselPosition]:
        """Every position recorded at or after ``since``, newest first."""
        rows = await self._backend.select(
            POSITIONS,
            [("timestamp_utc", gte(since))],
            columns="*,vessels(name)",
            order="timestamp_utc.desc",
        )
        return [_position_from_row(row, "get_recent_positions") for row in rows]

    # Alerts

    async def create_alert(self, alert: AlertRecord) -> AlertRecord:
        rows = await self._backend.insert(ALERTS, _payload(alert))
        return _single(rows, "create_alert", AlertRecord)

    async def get_alerts(
        self,
        organization_id: str | None = None,
        status: str | None = None,
    ) -> list[AlertRecord]:
        filters: list[tuple[str, str]] = []
        if organization_id:
            filters.append(("organization_id", eq(organization_id)))
        if status:
            filters.append(("status", eq(status)))
        rows = await self._backend.select(ALERTS, filters, order="created_at.desc")
        return _validate_all(AlertRecord, rows, "get_alerts")

    async def update_alert(
        self, alert_id: str, updates: dict[str, Any]
    ) -> AlertRecord | None:
        rows = await self._backend.update(ALERTS, updates, [("id", eq(alert_id))])
        return _validate(AlertRecord, rows[0], "update_alert") if rows else None

    # Analytics

    async def record_metric(self, metric: AnalyticsMetric) -> AnalyticsMetric:
        if metric.timestamp is None:
            metric = metric.model_copy(update={"timestamp": self._clock()})
        rows = await self._backend.insert(ANALYTICS, _payload(metric))
        return _single(rows, "record_metric", AnalyticsMetric)

    async def get_analytics_data(
        self,
        metric_name: str,
        organization_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AnalyticsMetric]:
        """Metric samples, newest first, optionally within ``[start, end]``."""
        filters = [("metric_name", eq(metric_name))]
        if organization_id:
            filters.append(("organization_id", eq(organization_id)))
        if start is not None:
            filters.append(("timestamp", gte(start)))
        if end is not None:
            filters.append(("timestamp", lte(end)))
        rows = await self._backend.select(ANALYTICS, filters, order="timestamp.desc")
        return _validate_all(AnalyticsMetric, rows, "get_analytics_data")

    async def export_analytics_data(
        self,
        organization_id: str | None = None,
        fmt: Literal["json", "csv"] = "json",
    ) -> list[dict[str, Any]] | str:
        filters: list[tuple[str, str]] = []
        if organization_id:
            filters.append(("organization_id", eq(organization_id)))
        rows = await self._backend.select(ANALYTICS, filters, order="timestamp.desc")
        if fmt == "csv":
            return to_csv(rows)
        return rows

    # RPC

    async def get_system_health(self) -> SystemHealth:
        result = await self._backend.rpc("get_system_health")
        # Set-returning functions come back as a one-element list
        if isinstance(result, list):
            result = result[0] if result else {}
        if result is None:
            result = {}
        if not isinstance(result, dict):
            raise BackendError("rpc:get_system_health", "unexpected result shape")
        data = dict(result)
        data.setdefault("last_check", self._clock())
        return _validate(SystemHealth, data, "rpc:get_system_health")

    async def cleanup_old_positions(self, days_to_keep: int | None = None) -> Any:
        days = days_to_keep or self._settings.POSITION_RETENTION_DAYS
        logger.bind(days_to_keep=days).info("Cleaning up old vessel positions")
        return await self._backend.rpc("cleanup_old_positions", {"days_to_keep": days})


def demo_system_health(clock: Clock = utcnow) -> SystemHealth:
    """Health record shown while the backend is unreachable."""
    return SystemHealth(
        vessels_count=5,
        alerts_count=2,
        positions_count=0,
        last_check=clock(),
        backend_available=False,
    )


async def fetch_or_fallback(
    call: Awaitable[T],
    fallback: Callable[[], T],
    operation: str,
) -> T:
    """Await a backend call, logging failures and returning ``fallback()``."""
    try:
        return await call
    except (BackendError, BackendNotInitializedError) as e:
        logger.bind(operation=operation).warning(
            f"Backend unavailable, using fallback data: {e}"
        )
        return fallback()


data_integration_service = DataIntegrationService()


def get_data_integration_service() -> DataIntegrationService:
    """FastAPI dependency for the data integration service singleton."""
    return data_integration_service
