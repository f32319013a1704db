# reminders/preferences.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from .dates import parse_timestamp

DEFAULT_EVERY_DAYS = 30
MAX_EVERY_DAYS = 3650


def clamp_every_days(value: Any) -> int:
    """Cadence is at least one day; anything non-numeric or non-finite becomes 1."""
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, n)


@dataclass(frozen=True)
class ReminderPreference:
    client_id: str
    every_days: int = DEFAULT_EVERY_DAYS
    last_reminded_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ReminderPreference":
        return cls(
            client_id=str(record["client_id"]),
            every_days=clamp_every_days(record.get("every_days")),
            last_reminded_at=parse_timestamp(record.get("last_reminded_at")),
        )


class PreferenceStore:
    """
    Local cache of per-client reminder preferences, written through to the DB.

    The cache only changes on a full load or after the database confirmed an
    upsert; a failed write leaves it untouched.
    """

    def __init__(self, writer, default_every_days: int = DEFAULT_EVERY_DAYS):
        self._writer = writer
        self.default_every_days = clamp_every_days(default_every_days)
        self._cache: Dict[str, ReminderPreference] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def load(self, records: Iterable[Dict[str, Any]]) -> None:
        cache = {}
        for rec in records:
            if rec.get("client_id") is None:
                continue
            pref = ReminderPreference.from_record(rec)
            cache[pref.client_id] = pref
        self._cache = cache

    def has(self, client_id: str) -> bool:
        return str(client_id) in self._cache

    def get(self, client_id: str) -> ReminderPreference:
        pref = self._cache.get(str(client_id))
        if pref is None:
            return ReminderPreference(client_id=str(client_id), every_days=self.default_every_days)
        return pref

    def upsert(self, client_id: str, every_days: Any,
               last_reminded_at: Optional[datetime]) -> ReminderPreference:
        # PreferenceWriteFailure from the writer propagates before the cache is touched
        confirmed = self._writer.upsert_preference(
            str(client_id), clamp_every_days(every_days), parse_timestamp(last_reminded_at)
        )
        pref = ReminderPreference.from_record(confirmed)
        self._cache = {**self._cache, pref.client_id: pref}
        return pref
