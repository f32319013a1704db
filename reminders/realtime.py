# reminders/realtime.py
"""
In-process change feed for table events.

Events are published by the database webhook route (Supabase "Database
Webhooks" POST ``{"type", "table", "schema", "record", "old_record"}``) and
fanned out to subscribers registered per table and event type.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_EVENTS: FrozenSet[ChangeType] = frozenset(ChangeType)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: ChangeType
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None
    schema: str = "public"

    @classmethod
    def from_webhook(cls, payload: Any) -> "ChangeEvent":
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")
        table = payload.get("table")
        if not isinstance(table, str) or not table.strip():
            raise ValueError("table is required")
        try:
            change = ChangeType(str(payload.get("type") or "").upper())
        except ValueError:
            raise ValueError(f"invalid event type: {payload.get('type')}") from None
        return cls(
            table=table.strip(),
            type=change,
            record=payload.get("record"),
            old_record=payload.get("old_record"),
            schema=payload.get("schema") or "public",
        )


Callback = Callable[[ChangeEvent], None]


def _event_mask(events: Union[str, Iterable[Any]]) -> FrozenSet[ChangeType]:
    if events == "*":
        return ALL_EVENTS
    if isinstance(events, str):
        events = [events]
    return frozenset(ChangeType(str(e).upper()) for e in events)


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, events: FrozenSet[ChangeType], callback: Callback):
        self._feed = feed
        self.table = table
        self.events = events
        self.callback = callback

    def matches(self, event: ChangeEvent) -> bool:
        return event.table == self.table and event.type in self.events

    def unsubscribe(self) -> None:
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._subs: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, table: str, events: Union[str, Iterable[Any]], callback: Callback) -> Subscription:
        sub = Subscription(self, table, _event_mask(events), callback)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver to matching subscribers; returns how many were called.

        A failing subscriber is logged and does not stop delivery to the others.
        """
        with self._lock:
            targets = [s for s in self._subs if s.matches(event)]
        for sub in targets:
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Change feed subscriber failed for %s %s", event.type.value, event.table)
        return len(targets)
