"""Flat tabular projection of audit entries for spreadsheet export."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Sequence

from campusdesk.core.clock import to_iso

from .models import SystemLog

EXPORT_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "actor",
    "role",
    "ip",
    "action",
    "target",
    "status",
    "risk",
    "details",
    "userAgent",
)


def log_to_row(entry: SystemLog) -> list[str]:
    values = (
        to_iso(entry.timestamp),
        entry.actor_name,
        entry.role_name,
        entry.ip,
        entry.action_type,
        entry.target,
        entry.status.value,
        entry.risk_level.value,
        entry.details,
        entry.user_agent,
    )
    return ["" if value is None else str(value) for value in values]


def build_rows(entries: Iterable[SystemLog]) -> list[list[str]]:
    """Header row followed by one row per entry, in the given order."""

    rows = [list(EXPORT_COLUMNS)]
    rows.extend(log_to_row(entry) for entry in entries)
    return rows


def rows_to_text(rows: Sequence[Sequence[str]]) -> str:
    """Render rows as CSV with every cell quoted.

    Quoting every cell keeps commas, quotes and line breaks inside values from
    breaking the row structure; embedded quotes are doubled.
    """

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()
