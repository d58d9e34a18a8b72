"""Persistence layer for saved calculator state.

The web app keeps the loan inputs, known rows and last computed schedule as a
JSON blob under an application-defined key. It defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL (e.g. PostgreSQL or
MySQL) for shared deployments.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///amort_state.sqlite3"


class SavedStateModel(Base):
    __tablename__ = "saved_states"

    key = Column(String(255), primary_key=True)
    state_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class StateStore:
    """Database-backed key-value store for state blobs."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def save(self, key: str, state: Dict[str, Any]) -> None:
        """Store ``state`` under ``key``, replacing any previous value."""
        if not key:
            raise ValueError("Storage key must not be empty")
        payload = json.dumps(state)
        with self._session_factory() as session:
            row = session.get(SavedStateModel, key)
            if row is None:
                session.add(SavedStateModel(key=key, state_json=payload))
            else:
                row.state_json = payload
                row.updated_at = datetime.utcnow()
            session.commit()
        logger.info("Saved state under key %s", key)

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the state stored under ``key`` or None."""
        if not key:
            return None
        with self._session_factory() as session:
            row = session.get(SavedStateModel, key)
            if row is None:
                return None
            return json.loads(row.state_json)

    def delete(self, key: str) -> None:
        if not key:
            return
        with self._session_factory() as session:
            row = session.get(SavedStateModel, key)
            if row is not None:
                session.delete(row)
                session.commit()

    def dispose(self) -> None:
        self._engine.dispose()


def create_store_from_env(url: str | None) -> StateStore:
    return StateStore(url or DEFAULT_DATABASE_URL)
