from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from .models import StorageCollectionTable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLModelStorage:
    """Persist collections as JSON documents in the ``storage_collections`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> "SQLModelStorage":
        return cls(create_engine(url, **engine_kwargs))

    @property
    def engine(self) -> Engine:
        return self._engine

    def ensure_schema(self) -> None:
        SQLModel.metadata.create_all(self._engine, tables=[StorageCollectionTable.__table__])

    def load(self, key: str, default: T) -> T | Any:
        try:
            with Session(self._engine) as session:
                row = session.get(StorageCollectionTable, key)
                if row is None or row.value is None:
                    return copy.deepcopy(default)
                return copy.deepcopy(row.value)
        except SQLAlchemyError:
            logger.exception("Failed to load collection %s; using default", key)
            return copy.deepcopy(default)

    def save(self, key: str, collection: Any) -> None:
        with Session(self._engine) as session:
            row = session.get(StorageCollectionTable, key)
            if row is None:
                row = StorageCollectionTable(key=key)
            row.value = collection
            row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
        logger.debug("Saved collection %s", key)

    def dispose(self) -> None:
        self._engine.dispose()
