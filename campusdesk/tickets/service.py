from __future__ import annotations

import logging
from dataclasses import replace

from campusdesk.core.clock import Clock, utcnow
from campusdesk.core.identity import DEFAULT_STUDENT_ROLE_ID, CurrentUser
from campusdesk.metrics import MetricsRegistry, register_default_metrics
from campusdesk.services.notifications import LoggingNotifier, Notifier, Severity

from .models import ReplyRole, Ticket, TicketCategory, TicketReply, TicketStatus
from .numbering import generate_ticket_number, new_reply_id, new_ticket_id
from .repository import TicketRepository
from .state import TicketStateMachine

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "(no subject)"


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """A request was refused; the message is shown to the user."""

    reason = "invalid"


class MissingActorError(TicketValidationError):
    reason = "missing_actor"


class InvalidCategoryError(TicketValidationError):
    reason = "invalid_category"


class DuplicateTicketError(TicketValidationError):
    reason = "duplicate"

    def __init__(self, existing: Ticket) -> None:
        super().__init__(
            f"You already have an open inquiry in this category ({existing.ticket_number}); "
            "please do not submit it twice."
        )
        self.existing = existing


class TicketNotFoundError(TicketValidationError):
    reason = "not_found"


class TicketClosedError(TicketValidationError):
    reason = "closed"


class EmptyReplyError(TicketValidationError):
    reason = "empty_reply"


class TicketService:
    """Ticket lifecycle: creation rules, assignment, replies and status overrides.

    Refused requests never raise to the caller. They are reported through the
    notifier and the operation returns ``None`` without touching the store.
    Assigning or re-statusing an unknown ticket id is a silent no-op that also
    returns ``None``; callers that need a strict failure should look the ticket
    up first.
    """

    def __init__(
        self,
        repository: TicketRepository,
        *,
        notifier: Notifier | None = None,
        clock: Clock = utcnow,
        student_role_id: str = DEFAULT_STUDENT_ROLE_ID,
        metrics: MetricsRegistry | None = None,
        state_machine: type[TicketStateMachine] = TicketStateMachine,
    ) -> None:
        self._repository = repository
        self._notifier = notifier if notifier is not None else LoggingNotifier()
        self._clock = clock
        self._student_role_id = student_role_id
        self._metrics = register_default_metrics(metrics)
        self._state_machine = state_machine

    # Queries

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        return self._repository.get_ticket(ticket_id)

    def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        tickets = self._repository.list_tickets(status=status)
        return sorted(tickets, key=lambda ticket: ticket.created_at, reverse=True)

    def inbox(self) -> list[Ticket]:
        """Tickets waiting for staff: OPEN, or PROCESSING with nobody assigned."""

        return [
            ticket
            for ticket in self.list_tickets()
            if ticket.status is TicketStatus.OPEN
            or (ticket.status is TicketStatus.PROCESSING and not ticket.assigned_to_id)
        ]

    def my_tasks(self, user_id: str) -> list[Ticket]:
        return [
            ticket
            for ticket in self.list_tickets()
            if ticket.assigned_to_id == user_id and ticket.status is not TicketStatus.CLOSED
        ]

    def archive(self) -> list[Ticket]:
        return self.list_tickets(status=TicketStatus.CLOSED)

    def tickets_for_student(self, student_id: str) -> list[Ticket]:
        return [ticket for ticket in self.list_tickets() if ticket.student_id == student_id]

    def get_ticket_replies(self, ticket_id: str) -> list[TicketReply]:
        return self._repository.list_replies(ticket_id)

    # Mutations

    def create_ticket(
        self,
        *,
        category: TicketCategory | str | None,
        subject: str,
        content: str,
        actor: CurrentUser | None,
    ) -> Ticket | None:
        try:
            if actor is None:
                raise MissingActorError("Please sign in before submitting an inquiry.")
            resolved_category = _resolve_category(category)
            duplicate = self._repository.find_active_ticket(actor.id, resolved_category)
            if duplicate is not None:
                raise DuplicateTicketError(duplicate)
        except TicketValidationError as exc:
            return self._reject(exc)

        now = self._clock()
        ticket = Ticket(
            id=new_ticket_id(),
            ticket_number=generate_ticket_number(resolved_category, now),
            student_id=actor.id,
            student_name=actor.name,
            category=resolved_category,
            subject=subject.strip() or DEFAULT_SUBJECT,
            content=content,
            status=self._state_machine.initial_state(),
            created_at=now,
            updated_at=now,
        )
        self._repository.add_ticket(ticket)
        self._repository.persist()

        self._metrics.counter("tickets_created_total").inc(labels={"category": ticket.category.value})
        logger.info("Ticket %s created by %s (%s)", ticket.ticket_number, actor.id, ticket.category.value)
        self._notifier.notify("Your inquiry has been submitted; we will reply as soon as possible.")
        return ticket

    def reply_to_ticket(
        self,
        ticket_id: str,
        message: str,
        *,
        actor: CurrentUser | None,
    ) -> TicketReply | None:
        try:
            if actor is None:
                raise MissingActorError("Please sign in before replying.")
            ticket = self._repository.get_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} was not found.")
            if not self._state_machine.accepts_replies(ticket.status):
                raise TicketClosedError(f"Ticket {ticket.ticket_number} is closed and cannot be replied to.")
            if not message.strip():
                raise EmptyReplyError("A reply needs a message.")
        except TicketValidationError as exc:
            return self._reject(exc)

        now = self._clock()
        role = ReplyRole.STUDENT if actor.is_student(self._student_role_id) else ReplyRole.ADMIN
        reply = TicketReply(
            id=new_reply_id(),
            ticket_id=ticket.id,
            user_id=actor.id,
            user_name=actor.name,
            user_role=role,
            message=message,
            created_at=now,
        )
        self._repository.add_reply(reply)

        new_status = self._state_machine.status_after_reply(role)
        self._repository.replace_ticket(replace(ticket, status=new_status, updated_at=now))
        self._repository.persist()

        self._metrics.counter("ticket_replies_total").inc(labels={"role": role.value})
        self._count_status_change(ticket.status, new_status)
        logger.info(
            "Reply %s on %s by %s (%s): %s -> %s",
            reply.id,
            ticket.ticket_number,
            actor.id,
            role.value,
            ticket.status.value,
            new_status.value,
        )
        self._notifier.notify("Reply sent.")
        return reply

    def update_ticket_status(self, ticket_id: str, status: TicketStatus) -> Ticket | None:
        ticket = self._repository.get_ticket(ticket_id)
        if ticket is None:
            logger.debug("Status update ignored for unknown ticket %s", ticket_id)
            return None

        updated = self._state_machine.apply_status(ticket, TicketStatus(status), self._clock())
        self._repository.replace_ticket(updated)
        self._repository.persist()

        self._count_status_change(ticket.status, updated.status)
        logger.info("Ticket %s status %s -> %s", ticket.ticket_number, ticket.status.value, updated.status.value)
        self._notifier.notify("Ticket status updated.")
        return updated

    def assign_ticket(self, ticket_id: str, admin_id: str) -> Ticket | None:
        ticket = self._repository.get_ticket(ticket_id)
        if ticket is None:
            logger.debug("Assignment ignored for unknown ticket %s", ticket_id)
            return None

        updated = replace(
            ticket,
            assigned_to_id=admin_id,
            status=self._state_machine.status_after_assignment(ticket.status),
            updated_at=self._clock(),
        )
        self._repository.replace_ticket(updated)
        self._repository.persist()

        self._count_status_change(ticket.status, updated.status)
        logger.info("Ticket %s assigned to %s", ticket.ticket_number, admin_id)
        self._notifier.notify("Ticket assigned.")
        return updated

    def _reject(self, error: TicketValidationError) -> None:
        self._metrics.counter("tickets_rejected_total").inc(labels={"reason": error.reason})
        logger.info("Ticket request rejected (%s): %s", error.reason, error)
        self._notifier.notify(str(error), Severity.ALERT)
        return None

    def _count_status_change(self, before: TicketStatus, after: TicketStatus) -> None:
        if before is not after:
            self._metrics.counter("ticket_status_changes_total").inc(labels={"status": after.value})


def _resolve_category(category: TicketCategory | str | None) -> TicketCategory:
    if category is None or category == "":
        return TicketCategory.OTHER
    try:
        return TicketCategory(category)
    except ValueError as exc:
        raise InvalidCategoryError(f"Unknown inquiry category: {category}") from exc

