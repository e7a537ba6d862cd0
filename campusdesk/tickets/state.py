from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from enum import Enum

from .models import ReplyRole, Ticket, TicketStatus


class TicketStateMachine:
    """Transition rules for a ticket's status.

    Statuses move on events rather than along a fixed graph: assignment pulls
    a ticket into PROCESSING, a reply sets the status from the replier's role
    and an explicit override can move to any status. The override is the only
    place that touches ``closed_at``, which keeps it set exactly while the
    ticket is CLOSED.
    """

    _STATUS_AFTER_REPLY: dict[ReplyRole, TicketStatus] = {
        ReplyRole.ADMIN: TicketStatus.RESOLVED,
        ReplyRole.STUDENT: TicketStatus.PROCESSING,
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def accepts_replies(cls, status: TicketStatus) -> bool:
        return status is not TicketStatus.CLOSED

    @classmethod
    def status_after_assignment(cls, current: TicketStatus) -> TicketStatus:
        if current is TicketStatus.CLOSED:
            return current
        return TicketStatus.PROCESSING

    @classmethod
    def status_after_reply(cls, role: ReplyRole) -> TicketStatus:
        return cls._STATUS_AFTER_REPLY[role]

    @classmethod
    def apply_status(cls, ticket: Ticket, status: TicketStatus, now: datetime) -> Ticket:
        closed_at = now if status is TicketStatus.CLOSED else None
        return replace(ticket, status=status, closed_at=closed_at, updated_at=now)


def _check_exhaustive(enum: type[Enum], mapping: dict) -> None:
    missing = set(enum) - set(mapping)
    if missing:
        raise RuntimeError(f"Unhandled {enum.__name__} values: {sorted(m.value for m in missing)}")


_check_exhaustive(ReplyRole, TicketStateMachine._STATUS_AFTER_REPLY)
