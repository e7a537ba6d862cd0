from __future__ import annotations

import logging
from typing import Iterable, Sequence

from campusdesk.storage import Storage

from .models import Ticket, TicketCategory, TicketReply, TicketStatus

logger = logging.getLogger(__name__)

DEFAULT_TICKETS_KEY = "ISU_CARE_SYS_TICKETS"
DEFAULT_REPLIES_KEY = "ISU_TICKET_REPLIES"


class TicketRepository:
    """In-memory ticket and reply collections backed by a storage adapter.

    The lists held here are authoritative. ``persist`` writes both
    collections back wholesale; there is no partial write.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        tickets_key: str = DEFAULT_TICKETS_KEY,
        replies_key: str = DEFAULT_REPLIES_KEY,
    ) -> None:
        self._storage = storage
        self._tickets_key = tickets_key
        self._replies_key = replies_key
        self._tickets: list[Ticket] = []
        self._replies: list[TicketReply] = []
        self.reload()

    def reload(self) -> None:
        raw_tickets = self._storage.load(self._tickets_key, [])
        raw_replies = self._storage.load(self._replies_key, [])
        self._tickets = list(_decode(raw_tickets, Ticket.from_dict, self._tickets_key))
        self._replies = list(_decode(raw_replies, TicketReply.from_dict, self._replies_key))
        logger.debug("Loaded %d tickets and %d replies", len(self._tickets), len(self._replies))

    def persist(self) -> None:
        self._storage.save(self._tickets_key, [ticket.to_dict() for ticket in self._tickets])
        self._storage.save(self._replies_key, [reply.to_dict() for reply in self._replies])

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        if status is None:
            return list(self._tickets)
        return [ticket for ticket in self._tickets if ticket.status is status]

    def find_active_ticket(self, student_id: str, category: TicketCategory) -> Ticket | None:
        """Return a ticket of the student in ``category`` that is not CLOSED."""

        for ticket in self._tickets:
            if (
                ticket.student_id == student_id
                and ticket.category is category
                and ticket.status is not TicketStatus.CLOSED
            ):
                return ticket
        return None

    def add_ticket(self, ticket: Ticket) -> None:
        self._tickets.insert(0, ticket)

    def replace_ticket(self, ticket: Ticket) -> bool:
        for index, current in enumerate(self._tickets):
            if current.id == ticket.id:
                self._tickets[index] = ticket
                return True
        return False

    def add_reply(self, reply: TicketReply) -> None:
        self._replies.append(reply)

    def list_replies(self, ticket_id: str) -> list[TicketReply]:
        replies = [reply for reply in self._replies if reply.ticket_id == ticket_id]
        return sorted(replies, key=lambda reply: reply.created_at)

    @property
    def tickets(self) -> Sequence[Ticket]:
        return tuple(self._tickets)

    @property
    def replies(self) -> Sequence[TicketReply]:
        return tuple(self._replies)


def _decode(raw: object, factory, key: str) -> Iterable:
    if not isinstance(raw, list):
        logger.warning("Collection %s is not a list; ignoring stored value", key)
        return
    for item in raw:
        try:
            yield factory(item)
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed record in %s: %r", key, item)
