"""Ticket lifecycle domain models and services."""

from .models import ReplyRole, Ticket, TicketCategory, TicketReply, TicketStatus
from .repository import TicketRepository
from .service import (
    DuplicateTicketError,
    MissingActorError,
    TicketNotFoundError,
    TicketService,
    TicketValidationError,
)
from .state import TicketStateMachine

__all__ = [
    "DuplicateTicketError",
    "MissingActorError",
    "ReplyRole",
    "Ticket",
    "TicketCategory",
    "TicketNotFoundError",
    "TicketReply",
    "TicketRepository",
    "TicketService",
    "TicketStateMachine",
    "TicketStatus",
    "TicketValidationError",
]
