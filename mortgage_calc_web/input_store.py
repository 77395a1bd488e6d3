"""Persistence layer for the "remember my inputs" option.

Each browser session may keep exactly one snapshot of the form values it last
entered (amount, rate, term and repayment type, stored as typed). The web app
saves the snapshot when the user ticks "remember" and removes it when they
untick it. It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL.
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

SNAPSHOT_FIELDS = ("amount", "rate", "years", "type")


class SavedInputsModel(Base):
    __tablename__ = "saved_inputs"

    user_token = Column(String(64), primary_key=True)
    inputs_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class InputStore:
    """Database-backed store holding one input snapshot per user token."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def load(self, user_token: str) -> Optional[Dict[str, str]]:
        if not user_token:
            return None
        with self._session_factory() as session:
            row = session.get(SavedInputsModel, user_token)
            if row is None:
                return None
            return self._to_dict(row)

    def save(self, user_token: str, inputs: Dict[str, Any]) -> None:
        if not user_token:
            return
        snapshot = {field: str(inputs.get(field) or "") for field in SNAPSHOT_FIELDS}
        with self._session_factory() as session:
            row = session.get(SavedInputsModel, user_token)
            if row is None:
                session.add(SavedInputsModel(user_token=user_token, inputs_json=json.dumps(snapshot)))
            else:
                row.inputs_json = json.dumps(snapshot)
                row.updated_at = datetime.utcnow()
            session.commit()

    def clear(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.get(SavedInputsModel, user_token)
            if row is not None:
                session.delete(row)
                session.commit()

    @staticmethod
    def _to_dict(row: SavedInputsModel) -> Optional[Dict[str, str]]:
        try:
            data = json.loads(row.inputs_json)
        except ValueError:
            logger.warning("Ignoring unreadable saved inputs for %s", row.user_token)
            return None
        if not isinstance(data, dict):
            return None
        return {field: str(data[field]) for field in SNAPSHOT_FIELDS if data.get(field)}


def create_store_from_env(url: str | None) -> InputStore:
    return InputStore(url or "sqlite:///mortgage_inputs.sqlite3")
