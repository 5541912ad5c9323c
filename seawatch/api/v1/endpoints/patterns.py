"""Behavior pattern endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from seawatch.schemas.pattern import (
    AnalyticsMetrics,
    BehaviorPattern,
    PatternFilters,
    PatternType,
    ThreatAssessment,
)
from seawatch.schemas.shared import Severity
from seawatch.services.patterns import PatternRecognitionService, get_pattern_service

router = APIRouter(prefix="/patterns", tags=["Patterns"])


@router.get("", summary="List behavior patterns")
async def list_patterns(
    service: Annotated[PatternRecognitionService, Depends(get_pattern_service)],
    severity: Annotated[Severity | None, Query(description="Filter by severity")] = None,
    pattern_type: Annotated[
        PatternType | None, Query(description="Filter by pattern type")
    ] = None,
    vessel_id: Annotated[str | None, Query(description="Filter by vessel")] = None,
) -> list[BehaviorPattern]:
    return service.get_patterns(
        PatternFilters(severity=severity, pattern_type=pattern_type, vessel_id=vessel_id)
    )


@router.get("/metrics", summary="Pattern recognition metrics")
async def get_pattern_metrics(
    service: Annotated[PatternRecognitionService, Depends(get_pattern_service)],
) -> AnalyticsMetrics:
    return service.analytics_metrics()


@router.get(
    "/{vessel_id}/assessment",
    summary="Assess vessel threat",
    description="Risk score, level and recommendations from the patterns recorded against a vessel.",
)
async def get_threat_assessment(
    vessel_id: str,
    service: Annotated[PatternRecognitionService, Depends(get_pattern_service)],
) -> ThreatAssessment:
    return service.threat_assessment(vessel_id)
