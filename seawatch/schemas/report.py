"""Alert report and export schemas."""

from datetime import datetime
from typing import Annotated, Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from seawatch.core.timeutils import as_utc
from seawatch.schemas.alert import Alert, AlertsMetrics, AlertStatus, AlertType
from seawatch.schemas.shared import Severity

ALL = "all"


class DateRange(BaseModel):
    """Inclusive time window."""

    start: Annotated[datetime, Field(description="Window start (inclusive)")]
    end: Annotated[datetime, Field(description="Window end (inclusive)")]

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        """Naive bounds are UTC, so either end may omit the offset."""
        return as_utc(value)

    @model_validator(mode="after")
    def validate_ordering(self) -> Self:
        """Reject windows that end before they start."""
        if self.end < self.start:
            raise ValueError("date range end must not be before start")
        return self


class ReportConfig(BaseModel):
    """Request for an alert report.

    Any filter left unset or given as ``"all"`` does not narrow the report.
    """

    date_range: DateRange
    severity: Severity | Literal["all"] | None = None
    type: AlertType | Literal["all"] | None = None
    status: AlertStatus | Literal["all"] | None = None


class ReportFilters(BaseModel):
    """Filters echoed back in a report, ``"all"`` for unset values."""

    severity: str = ALL
    type: str = ALL
    status: str = ALL


class ReportSummary(BaseModel):
    """Counts over the alerts included in a report."""

    total_alerts: Annotated[int, Field(ge=0)]
    by_severity: dict[str, int]
    by_status: dict[str, int]
    by_type: dict[str, int]


class ReportData(BaseModel):
    """A generated alert report."""

    generated: datetime
    date_range: DateRange
    filters: ReportFilters
    summary: ReportSummary
    alerts: list[Alert]


class ExportSummary(BaseModel):
    """Counts over exported alerts, only for values that occur."""

    total_alerts: Annotated[int, Field(ge=0)]
    alerts_by_type: dict[str, int]
    alerts_by_severity: dict[str, int]


class DetectionExport(BaseModel):
    """Snapshot of alerts for download."""

    exported_at: datetime
    alerts: list[Alert]
    summary: ExportSummary
    metrics: AlertsMetrics | None = None
