"""SQLModel table definitions for the collection storage adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, DateTime, String
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class StorageCollectionTable(SQLModel, table=True):
    """A whole collection stored as one JSON document under its key."""

    __tablename__ = "storage_collections"

    key: str = Field(sa_column=Column(String(255), primary_key=True))
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
