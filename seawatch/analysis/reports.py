"""Alert reports, detection exports and CSV rendering."""

import csv
import io
import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from operator import attrgetter
from typing import Any

from seawatch.analysis.aggregation import count_by
from seawatch.analysis.filters import filter_alerts, within_date_range
from seawatch.schemas.alert import Alert, AlertFilters, AlertsMetrics, AlertStatus, AlertType
from seawatch.schemas.report import (
    ALL,
    DetectionExport,
    ExportSummary,
    ReportConfig,
    ReportData,
    ReportFilters,
    ReportSummary,
)
from seawatch.schemas.shared import Severity

# Report summary key order, most severe first
SEVERITY_KEYS = (Severity.critical, Severity.high, Severity.medium, Severity.low)


def _selected(value: Any) -> Any:
    """Map the ``"all"`` sentinel to no filter."""
    if value is None or value == ALL:
        return None
    return value


def _echo(value: Any) -> str:
    selected = _selected(value)
    if selected is None:
        return ALL
    return str(getattr(selected, "value", selected))


def generate_report(
    alerts: Sequence[Alert], config: ReportConfig, now: datetime
) -> ReportData:
    """Build a report over the alerts matching ``config``.

    Filters are applied first, then the inclusive date window. Summary
    counters always carry every severity, status and type, zero when absent.
    """
    filtered = filter_alerts(
        alerts,
        AlertFilters(
            severity=_selected(config.severity),
            type=_selected(config.type),
            status=_selected(config.status),
        ),
    )
    in_range = within_date_range(
        filtered, config.date_range.start, config.date_range.end
    )

    return ReportData(
        generated=now,
        date_range=config.date_range,
        filters=ReportFilters(
            severity=_echo(config.severity),
            type=_echo(config.type),
            status=_echo(config.status),
        ),
        summary=ReportSummary(
            total_alerts=len(in_range),
            by_severity=count_by(in_range, attrgetter("severity"), SEVERITY_KEYS),
            by_status=count_by(in_range, attrgetter("status"), AlertStatus),
            by_type=count_by(in_range, attrgetter("type"), AlertType),
        ),
        alerts=in_range,
    )


def export_detection_data(
    alerts: Sequence[Alert],
    now: datetime,
    metrics: AlertsMetrics | None = None,
) -> DetectionExport:
    """Snapshot alerts with counts for the values that actually occur."""
    return DetectionExport(
        exported_at=now,
        alerts=list(alerts),
        summary=ExportSummary(
            total_alerts=len(alerts),
            alerts_by_type=count_by(alerts, attrgetter("type")),
            alerts_by_severity=count_by(alerts, attrgetter("severity")),
        ),
        metrics=metrics,
    )


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Render rows as CSV with the header taken from the first row."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(row.get(header)) for header in headers])
    return buffer.getvalue()
