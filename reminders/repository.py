# reminders/repository.py
"""
Read/write access to the tables the reminders feature consumes.

The rest of the feature only sees plain dict rows, the same shape a
``select("id,name,phone")`` against PostgREST would return, so the engine
stays independent from SQLAlchemy.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.client import Client
from models.client_reminder import ClientReminder
from models.order import Order
from utils.casing import sa_model_to_dict

from .errors import LoadFailure, PreferenceWriteFailure

Row = Dict[str, Any]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on write, so everything is stored as UTC wall time
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ReminderRepository:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _select(self, resource: str, query) -> List[Row]:
        try:
            return [sa_model_to_dict(obj, camel=False) for obj in query.all()]
        except SQLAlchemyError as e:
            self.session.rollback()
            raise LoadFailure(resource, str(getattr(e, "orig", None) or e)) from e

    def fetch_clients(self) -> List[Row]:
        q = self.session.query(Client).order_by(Client.name.asc())
        return self._select("clients", q)

    def fetch_orders(self, since: Optional[datetime] = None) -> List[Row]:
        q = self.session.query(Order)
        if since is not None:
            q = q.filter(Order.order_date >= _as_utc(since))
        q = q.order_by(Order.order_date.desc())  # latest first
        return self._select("orders", q)

    def fetch_preferences(self) -> List[Row]:
        return self._select("client_reminders", self.session.query(ClientReminder))

    def upsert_preference(self, client_id: str, every_days: int,
                          last_reminded_at: Optional[datetime]) -> Row:
        """Insert or update the row keyed by client_id and return it as stored."""
        try:
            rec = self.session.get(ClientReminder, client_id)
            if rec is None:
                rec = ClientReminder(client_id=client_id)
                self.session.add(rec)
            rec.every_days = every_days
            rec.last_reminded_at = _as_utc(last_reminded_at)
            self.session.commit()
            return sa_model_to_dict(rec, camel=False)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PreferenceWriteFailure(client_id, str(getattr(e, "orig", None) or e)) from e
