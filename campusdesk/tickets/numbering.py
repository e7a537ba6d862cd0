"""Human readable ticket numbers and opaque identifiers."""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime
from typing import Callable

from .models import TicketCategory

CATEGORY_PREFIXES: dict[TicketCategory, str] = {
    TicketCategory.SCHOLARSHIP: "SCH",
    TicketCategory.HOURS: "HRS",
    TicketCategory.PAYMENT: "PAY",
    TicketCategory.COUNSELING: "CSL",
    TicketCategory.OTHER: "OTH",
}
FALLBACK_PREFIX = "GEN"

if set(CATEGORY_PREFIXES) != set(TicketCategory):
    raise RuntimeError("Every ticket category needs a number prefix")


def category_prefix(category: TicketCategory | str | None) -> str:
    try:
        return CATEGORY_PREFIXES[TicketCategory(category)]
    except ValueError:
        return FALLBACK_PREFIX


def generate_ticket_number(
    category: TicketCategory | str | None,
    now: datetime,
    *,
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> str:
    """Return ``{PREFIX}-{YYYYMMDD}-{NNN}``.

    The number is a display label; uniqueness is not checked, the ticket id is
    the key.
    """

    return f"{category_prefix(category)}-{now:%Y%m%d}-{randbelow(1000):03d}"


def new_ticket_id() -> str:
    return f"tk_{uuid.uuid4().hex}"


def new_reply_id() -> str:
    return f"rp_{uuid.uuid4().hex}"
