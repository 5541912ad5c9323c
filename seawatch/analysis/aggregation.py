"""Counting and risk aggregation over alerts and behavior patterns."""

from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import Any, Protocol, TypeVar

from seawatch.schemas.alert import Alert, AlertsMetrics, AlertStatus
from seawatch.schemas.shared import SEVERITY_ORDER, Severity

T = TypeVar("T")

RISK_THRESHOLDS: tuple[tuple[float, Severity], ...] = (
    (80.0, Severity.critical),
    (60.0, Severity.high),
    (30.0, Severity.medium),
)


class HasSeverity(Protocol):
    severity: Severity


class HasRiskScore(Protocol):
    risk_score: float


def _label(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def count_by(
    items: Iterable[T],
    key: Callable[[T], Any],
    seed: Iterable[Any] = (),
) -> dict[str, int]:
    """Count items per key value.

    Every value in ``seed`` is present in the result, with zero if no item
    produced it. Enum keys are reported by value.
    """
    counts = {_label(value): 0 for value in seed}
    for item in items:
        label = _label(key(item))
        counts[label] = counts.get(label, 0) + 1
    return counts


def alert_metrics(alerts: Sequence[Alert]) -> AlertsMetrics:
    return AlertsMetrics(
        total=len(alerts),
        new=sum(1 for a in alerts if a.status == AlertStatus.new),
        critical=sum(1 for a in alerts if a.severity == Severity.critical),
        resolved=sum(1 for a in alerts if a.status == AlertStatus.resolved),
    )


def max_severity(items: Iterable[HasSeverity]) -> Severity:
    """Highest severity present, ``low`` for an empty input."""
    highest = Severity.low
    for item in items:
        if SEVERITY_ORDER[item.severity] > SEVERITY_ORDER[highest]:
            highest = item.severity
    return highest


def risk_level(items: Sequence[HasSeverity]) -> Severity:
    """Overall risk level of a set of detections.

    Any critical detection makes the level critical. Otherwise two or more
    high detections make it high, and more than two detections of any kind
    make it medium.
    """
    critical = sum(1 for item in items if item.severity == Severity.critical)
    high = sum(1 for item in items if item.severity == Severity.high)
    if critical > 0:
        return Severity.critical
    if high > 1:
        return Severity.high
    if len(items) > 2:
        return Severity.medium
    return Severity.low


def average_risk_score(items: Sequence[HasRiskScore]) -> float:
    if not items:
        return 0.0
    return sum(item.risk_score for item in items) / len(items)


def overall_risk_score(items: Sequence[HasRiskScore]) -> float:
    """Mean risk score weighted up by pattern count, capped at 100."""
    if not items:
        return 0.0
    multiplier = min(2.0, 1 + len(items) * 0.1)
    return min(100.0, average_risk_score(items) * multiplier)


def categorize_risk(score: float) -> Severity:
    for threshold, level in RISK_THRESHOLDS:
        if score >= threshold:
            return level
    return Severity.low
