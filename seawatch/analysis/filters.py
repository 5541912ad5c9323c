"""Filter predicates for vessels, alerts and behavior patterns.

Every function returns a new list and preserves the input order. Inputs are
never mutated.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from operator import attrgetter
from typing import Any, TypeVar

from seawatch.core.exceptions import UnknownFocusModeError
from seawatch.core.timeutils import as_utc
from seawatch.schemas.alert import Alert, AlertFilters
from seawatch.schemas.pattern import BehaviorPattern, PatternType
from seawatch.schemas.shared import Severity
from seawatch.schemas.vessel import FocusMode, Vessel, VesselStatus

T = TypeVar("T")

ARCTIC_MIN_LAT = 60.0
MEDITERRANEAN_LAT = (30.0, 45.0)
MEDITERRANEAN_LNG = (-10.0, 40.0)


def _is_ghost(vessel: Vessel) -> bool:
    return vessel.status == VesselStatus.dark or vessel.vessel_type == "unknown"


def _is_arctic(vessel: Vessel) -> bool:
    return vessel.lat > ARCTIC_MIN_LAT


def _is_mediterranean(vessel: Vessel) -> bool:
    return (
        MEDITERRANEAN_LAT[0] < vessel.lat < MEDITERRANEAN_LAT[1]
        and MEDITERRANEAN_LNG[0] < vessel.lng < MEDITERRANEAN_LNG[1]
    )


_FOCUS_PREDICATES: dict[FocusMode, Callable[[Vessel], bool]] = {
    FocusMode.all: lambda _vessel: True,
    FocusMode.ghost: _is_ghost,
    FocusMode.arctic: _is_arctic,
    FocusMode.mediterranean: _is_mediterranean,
}


def filter_vessels(vessels: Iterable[Vessel], focus_mode: FocusMode | str) -> list[Vessel]:
    """Apply a focus mode preset to a vessel list.

    Raises:
        UnknownFocusModeError: If ``focus_mode`` is not a known preset
    """
    try:
        mode = FocusMode(focus_mode)
    except ValueError as e:
        raise UnknownFocusModeError(str(focus_mode)) from e
    predicate = _FOCUS_PREDICATES[mode]
    return [vessel for vessel in vessels if predicate(vessel)]


def _matches_search(alert: Alert, needle: str) -> bool:
    if needle in alert.title.lower() or needle in alert.description.lower():
        return True
    name = alert.location.name if alert.location else None
    return bool(name) and needle in name.lower()


def filter_alerts(alerts: Iterable[Alert], filters: AlertFilters | None = None) -> list[Alert]:
    """Narrow alerts by severity, type, status and free-text search."""
    result = list(alerts)
    if filters is None:
        return result

    if filters.severity is not None:
        result = [a for a in result if a.severity == filters.severity]
    if filters.type is not None:
        result = [a for a in result if a.type == filters.type]
    if filters.status is not None:
        result = [a for a in result if a.status == filters.status]
    if filters.search:
        needle = filters.search.lower()
        result = [a for a in result if _matches_search(a, needle)]
    return result


def filter_patterns(
    patterns: Iterable[BehaviorPattern],
    severity: Severity | None = None,
    pattern_type: PatternType | None = None,
    vessel_id: str | None = None,
) -> list[BehaviorPattern]:
    """Equality filters over behavior patterns."""
    result = list(patterns)
    if severity is not None:
        result = [p for p in result if p.severity == severity]
    if pattern_type is not None:
        result = [p for p in result if p.pattern_type == pattern_type]
    if vessel_id is not None:
        result = [p for p in result if p.vessel_id == vessel_id]
    return result


def age(timestamp: datetime, now: datetime) -> timedelta:
    return as_utc(now) - as_utc(timestamp)


def is_stale(timestamp: datetime, max_age: timedelta, now: datetime) -> bool:
    """True when ``timestamp`` is strictly older than ``max_age``."""
    return age(timestamp, now) > max_age


def within_age(
    items: Iterable[T],
    max_age: timedelta,
    now: datetime,
    key: Callable[[T], datetime] = attrgetter("timestamp"),
) -> list[T]:
    """Keep items whose timestamp is no older than ``max_age``."""
    return [item for item in items if not is_stale(key(item), max_age, now)]


def within_date_range(
    items: Iterable[T],
    start: datetime,
    end: datetime,
    key: Callable[[T], Any] = attrgetter("timestamp"),
) -> list[T]:
    """Keep items timestamped inside ``[start, end]``."""
    lower, upper = as_utc(start), as_utc(end)
    return [item for item in items if lower <= as_utc(key(item)) <= upper]
