# reminders/engine.py
"""
Due-date engine: turns clients, orders and reminder preferences into one
derived ``ReminderRow`` per client.

Rows are recomputed on every pass and never stored; ``next_due_at`` only
depends on the last order, the last manual reminder, the cadence and the
clock handed in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .dates import add_days, days_between, later_of, local_day, parse_timestamp
from .preferences import DEFAULT_EVERY_DAYS, PreferenceStore, ReminderPreference


class DueLabel(str, Enum):
    PAST_DUE = "Past Due"
    DUE_TODAY = "Due Today"
    UPCOMING = "Upcoming"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {DueLabel.PAST_DUE: 0, DueLabel.DUE_TODAY: 1, DueLabel.UPCOMING: 2}


@dataclass(frozen=True)
class ReminderRow:
    client_id: str
    client_name: str
    phone: Optional[str]
    last_order_at: Optional[datetime]
    every_days: int
    last_reminded_at: Optional[datetime]
    next_due_at: datetime
    due_label: DueLabel


def latest_order_by_client(orders: Iterable[Dict[str, Any]]) -> Dict[str, datetime]:
    """Latest order date per client name. Orders with a bad or missing date are skipped."""
    latest: Dict[str, datetime] = {}
    for order in orders:
        name = order.get("client")
        placed_at = parse_timestamp(order.get("order_date"))
        if not name or placed_at is None:
            continue
        prev = latest.get(name)
        if prev is None or placed_at > prev:
            latest[name] = placed_at
    return latest


def classify(next_due_at: datetime, now: datetime, tz: tzinfo = timezone.utc) -> DueLabel:
    # Compare calendar days, not instants, so a row doesn't flip within the day
    due_day = local_day(next_due_at, tz)
    today = local_day(now, tz)
    if due_day < today:
        return DueLabel.PAST_DUE
    if due_day == today:
        return DueLabel.DUE_TODAY
    return DueLabel.UPCOMING


def compute_row(client: Dict[str, Any], last_order_at: Optional[datetime],
                pref: ReminderPreference, now: datetime,
                tz: tzinfo = timezone.utc,
                fallback_every_days: int = DEFAULT_EVERY_DAYS) -> ReminderRow:
    # The most recent signal (new order or manual outreach) restarts the countdown
    base = later_of(last_order_at, pref.last_reminded_at) or now
    # A cadence pushing the date out of range falls back to the default one
    next_due_at = add_days(base, pref.every_days, tz) or add_days(base, fallback_every_days, tz)
    return ReminderRow(
        client_id=str(client["id"]),
        client_name=client.get("name") or "",
        phone=client.get("phone") or None,
        last_order_at=last_order_at,
        every_days=pref.every_days,
        last_reminded_at=pref.last_reminded_at,
        next_due_at=next_due_at,
        due_label=classify(next_due_at, now, tz),
    )


def compute_rows(clients: Iterable[Dict[str, Any]], orders: Iterable[Dict[str, Any]],
                 preferences: PreferenceStore, now: Any = None,
                 tz: tzinfo = timezone.utc) -> List[ReminderRow]:
    """One row per client, in client order."""
    now = parse_timestamp(now) or datetime.now(timezone.utc)
    latest = latest_order_by_client(orders)
    return [
        # Exact, case-sensitive name match: orders reference clients by name
        compute_row(c, latest.get(c.get("name")), preferences.get(c["id"]), now, tz,
                    preferences.default_every_days)
        for c in clients
    ]


def late_by_days(row: ReminderRow, now: Any) -> Optional[int]:
    late = days_between(row.next_due_at, now)
    return late if late and late > 0 else None


def order_history(orders: Iterable[Dict[str, Any]], client_name: str) -> List[Dict[str, Any]]:
    """Orders of one client, newest first, matching the name loosely (trimmed, any case)."""
    key = (client_name or "").strip().lower()
    history = []
    for order in orders:
        placed_at = parse_timestamp(order.get("order_date"))
        if placed_at is None or (order.get("client") or "").strip().lower() != key:
            continue
        history.append({"id": str(order.get("id")), "order_date": placed_at})
    history.sort(key=lambda o: o["order_date"], reverse=True)
    return history
