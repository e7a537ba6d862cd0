from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from campusdesk.core.config import Settings
from campusdesk.core.identity import CurrentUser
from campusdesk.dependencies.auth import AuthenticatedUser, StaffUser
from campusdesk.dependencies.services import NotificationsDep, SettingsDep, TicketServiceDep
from campusdesk.services.notifications import NotificationBuffer
from campusdesk.tickets import ReplyRole, Ticket, TicketCategory, TicketReply, TicketService, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TicketCreateRequest(_CamelModel):
    category: TicketCategory = TicketCategory.OTHER
    subject: str = Field(default="", max_length=255)
    content: str = Field(..., min_length=1)


class TicketReplyRequest(_CamelModel):
    message: str = Field(..., min_length=1)


class TicketAssignRequest(_CamelModel):
    admin_id: str | None = Field(default=None, min_length=1)


class TicketStatusChangeRequest(_CamelModel):
    status: TicketStatus


class TicketResponse(_CamelModel):
    id: str
    ticket_number: str
    student_id: str
    student_name: str
    category: TicketCategory
    subject: str
    content: str
    status: TicketStatus
    assigned_to_id: str | None = None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None


class TicketReplyResponse(_CamelModel):
    id: str
    ticket_id: str
    user_id: str
    user_name: str
    user_role: ReplyRole
    message: str
    created_at: datetime


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket.to_dict())


def _to_reply_response(reply: TicketReply) -> TicketReplyResponse:
    return TicketReplyResponse.model_validate(reply.to_dict())


def _rejection_detail(notifications: NotificationBuffer, fallback: str) -> str:
    last = notifications.last
    return last.message if last is not None else fallback


def _visible_ticket(service: TicketService, ticket_id: str, user: CurrentUser, settings: Settings) -> Ticket:
    ticket = service.get_ticket(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    if user.is_student(settings.student_role_id) and ticket.student_id != user.id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return ticket


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    user: AuthenticatedUser,
    settings: SettingsDep,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    if user.is_student(settings.student_role_id):
        tickets = service.tickets_for_student(user.id)
        if status_filter is not None:
            tickets = [ticket for ticket in tickets if ticket.status is status_filter]
    else:
        tickets = service.list_tickets(status=status_filter)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/inbox", response_model=list[TicketResponse])
async def inbox(service: TicketServiceDep, _: StaffUser) -> list[TicketResponse]:
    return [_to_response(ticket) for ticket in service.inbox()]


@router.get("/mine", response_model=list[TicketResponse])
async def my_tasks(service: TicketServiceDep, user: StaffUser) -> list[TicketResponse]:
    return [_to_response(ticket) for ticket in service.my_tasks(user.id)]


@router.get("/archive", response_model=list[TicketResponse])
async def archive(service: TicketServiceDep, _: StaffUser) -> list[TicketResponse]:
    return [_to_response(ticket) for ticket in service.archive()]


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    notifications: NotificationsDep,
    user: AuthenticatedUser,
) -> TicketResponse:
    ticket = service.create_ticket(
        category=payload.category,
        subject=payload.subject,
        content=payload.content,
        actor=user,
    )
    if ticket is None:
        raise HTTPException(status_code=409, detail=_rejection_detail(notifications, "Ticket was rejected"))
    return _to_response(ticket)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str, service: TicketServiceDep, user: AuthenticatedUser, settings: SettingsDep
) -> TicketResponse:
    return _to_response(_visible_ticket(service, ticket_id, user, settings))


@router.get("/{ticket_id}/replies", response_model=list[TicketReplyResponse])
async def list_replies(
    ticket_id: str, service: TicketServiceDep, user: AuthenticatedUser, settings: SettingsDep
) -> list[TicketReplyResponse]:
    _visible_ticket(service, ticket_id, user, settings)
    return [_to_reply_response(reply) for reply in service.get_ticket_replies(ticket_id)]


@router.post("/{ticket_id}/replies", response_model=TicketReplyResponse, status_code=status.HTTP_201_CREATED)
async def reply_to_ticket(
    ticket_id: str,
    payload: TicketReplyRequest,
    service: TicketServiceDep,
    notifications: NotificationsDep,
    user: AuthenticatedUser,
    settings: SettingsDep,
) -> TicketReplyResponse:
    _visible_ticket(service, ticket_id, user, settings)
    reply = service.reply_to_ticket(ticket_id, payload.message, actor=user)
    if reply is None:
        raise HTTPException(status_code=409, detail=_rejection_detail(notifications, "Reply was rejected"))
    return _to_reply_response(reply)


@router.post("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: str,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    user: StaffUser,
) -> TicketResponse:
    ticket = service.assign_ticket(ticket_id, payload.admin_id or user.id)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    return _to_response(ticket)


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    _: StaffUser,
) -> TicketResponse:
    ticket = service.update_ticket_status(ticket_id, payload.status)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    return _to_response(ticket)
