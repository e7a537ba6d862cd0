from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel

from campusdesk.dependencies.auth import AuthenticatedUser
from campusdesk.dependencies.services import NotificationsDep
from campusdesk.services.notifications import Severity

router = APIRouter(tags=["system"])


class NotificationModel(BaseModel):
    message: str
    severity: Severity
    created_at: datetime


@router.get("/ping", summary="Public health check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/notifications", response_model=list[NotificationModel])
async def recent_notifications(
    notifications: NotificationsDep,
    _: AuthenticatedUser,
    limit: int = Query(default=10, ge=1, le=100),
) -> list[NotificationModel]:
    return [
        NotificationModel(message=item.message, severity=item.severity, created_at=item.created_at)
        for item in notifications.recent(limit)
    ]
