from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from campusdesk.audit import AuditLogStore, AuditTrailAnalyzer
from campusdesk.core.config import Settings, get_settings
from campusdesk.services.notifications import NotificationBuffer
from campusdesk.tickets import TicketService


def _state_attribute(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return value


async def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


async def get_ticket_service(request: Request) -> TicketService:
    return _state_attribute(request, "ticket_service", "Ticket service")


async def get_audit_store(request: Request) -> AuditLogStore:
    return _state_attribute(request, "audit_store", "Audit log store")


async def get_audit_analyzer(request: Request) -> AuditTrailAnalyzer:
    return _state_attribute(request, "audit_analyzer", "Audit analyzer")


async def get_notifications(request: Request) -> NotificationBuffer:
    return _state_attribute(request, "notifications", "Notification buffer")


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
AuditStoreDep = Annotated[AuditLogStore, Depends(get_audit_store)]
AuditAnalyzerDep = Annotated[AuditTrailAnalyzer, Depends(get_audit_analyzer)]
NotificationsDep = Annotated[NotificationBuffer, Depends(get_notifications)]
