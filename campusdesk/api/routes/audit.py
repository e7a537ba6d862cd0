from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from campusdesk.audit import AnomalyKind, AuditLogFilter, FieldChange, LogStatus, RiskLevel, SystemLog
from campusdesk.dependencies.auth import StaffUser
from campusdesk.dependencies.services import AuditAnalyzerDep, AuditStoreDep

router = APIRouter(prefix="/audit", tags=["audit"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldChangeModel(_CamelModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class SystemLogResponse(_CamelModel):
    id: str
    timestamp: datetime
    actor_id: str | None = None
    actor_name: str
    role_name: str
    ip: str
    action_type: str
    target: str
    status: LogStatus
    risk_level: RiskLevel
    details: str | None = None
    user_agent: str | None = None
    changes: list[FieldChangeModel] | None = None


class SystemLogCreateRequest(_CamelModel):
    actor_id: str | None = None
    actor_name: str = Field(..., min_length=1)
    role_name: str = ""
    ip: str = ""
    action_type: str = Field(..., min_length=1)
    target: str = ""
    status: LogStatus = LogStatus.SUCCESS
    risk_level: RiskLevel | None = None
    details: str | None = None
    user_agent: str | None = None
    changes: list[FieldChangeModel] | None = None


class TrendPointResponse(_CamelModel):
    day: date
    count: int


class AnomalyAlertResponse(_CamelModel):
    kind: AnomalyKind
    count: int
    message: str
    severity: RiskLevel


class AuditSummaryResponse(_CamelModel):
    total: int
    failures: int
    warnings: int
    high_risk: int
    unique_actors: int
    today: int


def _to_response(entry: SystemLog) -> SystemLogResponse:
    return SystemLogResponse.model_validate(entry.to_dict())


def _criteria(
    query: str,
    action_type: str,
    risk_level: str,
    start: str | None,
    end: str | None,
) -> AuditLogFilter:
    return AuditLogFilter(query=query, action_type=action_type, risk_level=risk_level, start=start, end=end)


def _filtered(analyzer, criteria: AuditLogFilter) -> list[SystemLog]:
    try:
        return analyzer.filter_logs(criteria)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/logs", response_model=list[SystemLogResponse])
async def list_logs(
    analyzer: AuditAnalyzerDep,
    _: StaffUser,
    query: str = Query(default=""),
    action_type: str = Query(default="ALL", alias="actionType"),
    risk_level: str = Query(default="ALL", alias="riskLevel"),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
) -> list[SystemLogResponse]:
    entries = _filtered(analyzer, _criteria(query, action_type, risk_level, start, end))
    return [_to_response(entry) for entry in entries]


@router.post("/logs", response_model=SystemLogResponse, status_code=status.HTTP_201_CREATED)
async def append_log(payload: SystemLogCreateRequest, store: AuditStoreDep) -> SystemLogResponse:
    entry = store.record(
        actor_id=payload.actor_id,
        actor_name=payload.actor_name,
        role_name=payload.role_name,
        ip=payload.ip,
        action_type=payload.action_type,
        target=payload.target,
        status=payload.status,
        risk_level=payload.risk_level,
        details=payload.details,
        user_agent=payload.user_agent,
        changes=None
        if payload.changes is None
        else [FieldChange(change.field, change.old_value, change.new_value) for change in payload.changes],
    )
    return _to_response(entry)


@router.get("/trend", response_model=list[TrendPointResponse])
async def trend(analyzer: AuditAnalyzerDep, _: StaffUser) -> list[TrendPointResponse]:
    return [TrendPointResponse(day=point.day, count=point.count) for point in analyzer.daily_trend()]


@router.get("/risk", response_model=dict[RiskLevel, int])
async def risk_distribution(analyzer: AuditAnalyzerDep, _: StaffUser) -> dict[RiskLevel, int]:
    return analyzer.risk_distribution()


@router.get("/anomalies", response_model=list[AnomalyAlertResponse])
async def anomalies(analyzer: AuditAnalyzerDep, _: StaffUser) -> list[AnomalyAlertResponse]:
    return [
        AnomalyAlertResponse(kind=alert.kind, count=alert.count, message=alert.message, severity=alert.severity)
        for alert in analyzer.detect_anomalies()
    ]


@router.get("/summary", response_model=AuditSummaryResponse)
async def summary(analyzer: AuditAnalyzerDep, _: StaffUser) -> AuditSummaryResponse:
    result = analyzer.summary()
    return AuditSummaryResponse(
        total=result.total,
        failures=result.failures,
        warnings=result.warnings,
        high_risk=result.high_risk,
        unique_actors=result.unique_actors,
        today=result.today,
    )


@router.get("/export", response_class=PlainTextResponse)
async def export_logs(
    analyzer: AuditAnalyzerDep,
    _: StaffUser,
    query: str = Query(default=""),
    action_type: str = Query(default="ALL", alias="actionType"),
    risk_level: str = Query(default="ALL", alias="riskLevel"),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
) -> PlainTextResponse:
    criteria = _criteria(query, action_type, risk_level, start, end)
    try:
        body = analyzer.export_text(criteria)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return PlainTextResponse(content=body, media_type="text/csv")
