# reminders/board.py
"""
ReminderBoard: the state behind the reminders screen.

Holds the latest consistent snapshot of clients and orders plus the
preference cache, and rebuilds rows from it on demand. Each fetch takes a
ticket per resource; a result is applied only if no newer fetch of that
resource was started meanwhile and the board is still open, so late
responses never overwrite fresher data. A failed fetch keeps whatever was
loaded before and records an error message for the UI.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional

from .engine import ReminderRow, compute_rows, order_history
from .errors import LoadFailure
from .preferences import DEFAULT_EVERY_DAYS, PreferenceStore, ReminderPreference
from .realtime import ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)

CLIENTS = "clients"
ORDERS = "orders"
PREFERENCES = "preferences"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderBoard:
    def __init__(self, repository, *, default_every_days: int = DEFAULT_EVERY_DAYS,
                 tz: tzinfo = timezone.utc, order_lookback_days: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.preferences = PreferenceStore(repository, default_every_days)
        self.tz = tz
        self.order_lookback_days = order_lookback_days
        self.clock = clock or _utcnow

        self._lock = threading.Lock()
        self._tickets: Dict[str, int] = {CLIENTS: 0, ORDERS: 0, PREFERENCES: 0}
        self._clients: List[Dict[str, Any]] = []
        self._orders: List[Dict[str, Any]] = []
        self._closed = False
        self._attempted = False
        self._subscription: Optional[Subscription] = None

        self.error: Optional[str] = None
        self.loaded_at: Optional[datetime] = None

    # -- clock / snapshot ---------------------------------------------------

    def now(self) -> datetime:
        return self.clock()

    @property
    def clients(self) -> List[Dict[str, Any]]:
        return list(self._clients)

    @property
    def orders(self) -> List[Dict[str, Any]]:
        return list(self._orders)

    @property
    def closed(self) -> bool:
        return self._closed

    # -- stale-result guard ---------------------------------------------------

    def _issue(self, *resources: str) -> Dict[str, int]:
        with self._lock:
            for r in resources:
                self._tickets[r] += 1
            return {r: self._tickets[r] for r in resources}

    def _is_current(self, resource: str, ticket: int) -> bool:
        return not self._closed and self._tickets[resource] == ticket

    def _fail(self, exc: LoadFailure, tickets: Dict[str, int]) -> None:
        with self._lock:
            if any(self._is_current(r, t) for r, t in tickets.items()):
                self.error = str(exc)
                logger.warning("Reminders load failed, keeping previous data: %s", exc)
            else:
                logger.debug("Discarding failure of superseded fetch: %s", exc)

    def _orders_since(self) -> Optional[datetime]:
        if not self.order_lookback_days:
            return None
        return self.now() - timedelta(days=self.order_lookback_days)

    # -- loading --------------------------------------------------------------

    def load(self) -> bool:
        """Full reload of clients, orders and preferences. Returns False on failure."""
        self._attempted = True
        tickets = self._issue(CLIENTS, ORDERS, PREFERENCES)
        try:
            clients = self.repository.fetch_clients()
            orders = self.repository.fetch_orders(since=self._orders_since())
            prefs = self.repository.fetch_preferences()
        except LoadFailure as e:
            self._fail(e, tickets)
            return False

        with self._lock:
            applied = False
            if self._is_current(CLIENTS, tickets[CLIENTS]):
                self._clients = clients
                applied = True
            if self._is_current(ORDERS, tickets[ORDERS]):
                self._orders = orders
                applied = True
            if self._is_current(PREFERENCES, tickets[PREFERENCES]):
                self.preferences.load(prefs)
                applied = True
            if applied:
                self.error = None
                self.loaded_at = self.now()
            else:
                logger.debug("Discarding superseded reminders load")
        return True

    def reload_orders(self) -> bool:
        tickets = self._issue(ORDERS)
        try:
            orders = self.repository.fetch_orders(since=self._orders_since())
        except LoadFailure as e:
            self._fail(e, tickets)
            return False

        with self._lock:
            if self._is_current(ORDERS, tickets[ORDERS]):
                self._orders = orders
                self.error = None
                self.loaded_at = self.now()
            else:
                logger.debug("Discarding superseded orders reload")
        return True

    def ensure_loaded(self) -> None:
        # Only the first access loads implicitly; failures wait for a manual refresh
        if not self._attempted:
            self.load()

    # -- realtime ---------------------------------------------------------------

    def attach(self, feed: ChangeFeed) -> Subscription:
        """Re-fetch orders whenever the orders table changes."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._subscription = feed.subscribe(ORDERS, "*", self._on_orders_changed)
        return self._subscription

    def _on_orders_changed(self, event: ChangeEvent) -> None:
        logger.info("orders %s received, reloading orders", event.type.value)
        self.reload_orders()

    def close(self) -> None:
        with self._lock:
            self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # -- derived data -------------------------------------------------------------

    def rows(self, now: Optional[datetime] = None) -> List[ReminderRow]:
        with self._lock:
            clients, orders = self._clients, self._orders
        return compute_rows(clients, orders, self.preferences, now or self.now(), self.tz)

    def find_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        cid = str(client_id)
        return next((c for c in self._clients if str(c.get("id")) == cid), None)

    def next_unconfigured_client(self) -> Optional[Dict[str, Any]]:
        """First client without a stored preference, else the first client."""
        clients = self._clients
        target = next((c for c in clients if not self.preferences.has(c["id"])), None)
        return target or (clients[0] if clients else None)

    def order_history(self, client_name: str) -> List[Dict[str, Any]]:
        return order_history(self._orders, client_name)

    def save_preference(self, client_id: str, every_days: Any,
                        last_reminded_at: Optional[datetime]) -> ReminderPreference:
        """Write through the preference store. PreferenceWriteFailure propagates."""
        # An in-flight full load must not overwrite this write with older rows
        self._issue(PREFERENCES)
        return self.preferences.upsert(client_id, every_days, last_reminded_at)
