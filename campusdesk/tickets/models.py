from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from campusdesk.core.clock import ensure_aware, parse_datetime, to_iso

logger = logging.getLogger(__name__)


class TicketCategory(str, Enum):
    """Subject areas a student can raise an inquiry about."""

    SCHOLARSHIP = "SCHOLARSHIP"
    HOURS = "HOURS"
    PAYMENT = "PAYMENT"
    COUNSELING = "COUNSELING"
    OTHER = "OTHER"


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "OPEN"
    PROCESSING = "PROCESSING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class ReplyRole(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a student inquiry."""

    id: str
    ticket_number: str
    student_id: str
    student_name: str
    category: TicketCategory
    subject: str
    content: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    assigned_to_id: str | None = None
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.created_at = ensure_aware(self.created_at)
        self.updated_at = ensure_aware(self.updated_at)
        if self.closed_at is not None:
            self.closed_at = ensure_aware(self.closed_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ticketNumber": self.ticket_number,
            "studentId": self.student_id,
            "studentName": self.student_name,
            "category": self.category.value,
            "subject": self.subject,
            "content": self.content,
            "status": self.status.value,
            "assignedToId": self.assigned_to_id,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "closedAt": to_iso(self.closed_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Ticket":
        status = TicketStatus(data["status"])
        updated_at = parse_datetime(data.get("updatedAt") or data["createdAt"])
        closed_at = parse_datetime(data["closedAt"]) if data.get("closedAt") else None
        if status is TicketStatus.CLOSED and closed_at is None:
            logger.warning("Closed ticket %s has no closedAt; using updatedAt", data["id"])
            closed_at = updated_at
        elif status is not TicketStatus.CLOSED and closed_at is not None:
            logger.warning("Ticket %s is %s but has closedAt; clearing it", data["id"], status.value)
            closed_at = None
        return cls(
            id=str(data["id"]),
            ticket_number=str(data["ticketNumber"]),
            student_id=str(data["studentId"]),
            student_name=str(data.get("studentName", "")),
            category=TicketCategory(data.get("category") or TicketCategory.OTHER),
            subject=str(data.get("subject", "")),
            content=str(data.get("content", "")),
            status=status,
            assigned_to_id=data.get("assignedToId") or None,
            created_at=parse_datetime(data["createdAt"]),
            updated_at=updated_at,
            closed_at=closed_at,
        )


@dataclass(slots=True, frozen=True)
class TicketReply:
    """Message appended to a ticket; never changed after creation."""

    id: str
    ticket_id: str
    user_id: str
    user_name: str
    user_role: ReplyRole
    message: str
    created_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_aware(self.created_at))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ticketId": self.ticket_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "userRole": self.user_role.value,
            "message": self.message,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TicketReply":
        return cls(
            id=str(data["id"]),
            ticket_id=str(data["ticketId"]),
            user_id=str(data["userId"]),
            user_name=str(data.get("userName", "")),
            user_role=ReplyRole(str(data["userRole"]).upper()),
            message=str(data.get("message", "")),
            created_at=parse_datetime(data["createdAt"]),
        )
