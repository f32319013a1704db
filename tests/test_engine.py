from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from reminders.engine import (
    DueLabel,
    classify,
    compute_rows,
    late_by_days,
    latest_order_by_client,
    order_history,
)
from reminders.preferences import PreferenceStore

UTC = timezone.utc


class MemoryWriter:
    def upsert_preference(self, client_id, every_days, last_reminded_at):
        return {"client_id": client_id, "every_days": every_days, "last_reminded_at": last_reminded_at}


def store(*records):
    s = PreferenceStore(MemoryWriter())
    s.load(records)
    return s


ALICE = {"id": "c-alice", "name": "Alice", "phone": "9876543210"}
BOB = {"id": "c-bob", "name": "Bob", "phone": None}


def test_alice_scenario_due_today_then_past_due():
    orders = [{"id": "o1", "client": "Alice", "order_date": "2024-01-01T00:00:00Z"}]

    [row] = compute_rows([ALICE], orders, store(), now="2024-01-31T09:00:00Z")
    assert row.next_due_at == datetime(2024, 1, 31, tzinfo=UTC)
    assert row.due_label is DueLabel.DUE_TODAY
    assert row.every_days == 30
    assert row.last_reminded_at is None

    [row] = compute_rows([ALICE], orders, store(), now="2024-02-01T00:00:01Z")
    assert row.due_label is DueLabel.PAST_DUE


def test_bob_without_orders_counts_from_now():
    now = datetime(2024, 6, 10, 15, 45, tzinfo=UTC)
    [row] = compute_rows([BOB], [], store(), now=now)
    assert row.last_order_at is None
    assert row.next_due_at == now + timedelta(days=30)
    assert row.due_label is DueLabel.UPCOMING


def test_out_of_range_cadence_falls_back_to_default():
    orders = [{"id": "o1", "client": "Alice", "order_date": "2024-01-01T00:00:00Z"}]
    prefs = store({"client_id": "c-alice", "every_days": 5_000_000, "last_reminded_at": None})

    alice, bob = compute_rows([ALICE, BOB], orders, prefs, now="2024-01-31T09:00:00Z")
    assert alice.every_days == 5_000_000
    assert alice.next_due_at == datetime(2024, 1, 31, tzinfo=UTC)
    assert alice.due_label is DueLabel.DUE_TODAY
    assert bob.next_due_at is not None


@pytest.mark.parametrize("days_ago, expected", [
    (29, DueLabel.UPCOMING),
    (30, DueLabel.DUE_TODAY),
    (31, DueLabel.PAST_DUE),
])
def test_default_cadence_boundaries(days_ago, expected):
    now = datetime(2024, 5, 20, 10, 0, tzinfo=UTC)
    orders = [{"id": "o1", "client": "Alice", "order_date": now - timedelta(days=days_ago)}]
    [row] = compute_rows([ALICE], orders, store(), now=now)
    assert row.due_label is expected


def test_new_order_never_moves_due_date_backwards():
    now = datetime(2024, 5, 20, tzinfo=UTC)
    prefs = store({"client_id": "c-alice", "every_days": 14,
                   "last_reminded_at": "2024-05-10T00:00:00Z"})
    orders = [{"id": "o1", "client": "Alice", "order_date": "2024-05-01T00:00:00Z"}]
    [before] = compute_rows([ALICE], orders, prefs, now=now)

    for placed in ("2024-05-05T00:00:00Z", "2024-05-15T00:00:00Z", "2024-05-20T00:00:00Z"):
        orders = orders + [{"id": placed, "client": "Alice", "order_date": placed}]
        [after] = compute_rows([ALICE], orders, prefs, now=now)
        assert after.next_due_at >= before.next_due_at
        before = after


def test_manual_reminder_later_than_order_wins():
    prefs = store({"client_id": "c-alice", "every_days": 7, "last_reminded_at": "2024-03-10T00:00:00Z"})
    orders = [{"id": "o1", "client": "Alice", "order_date": "2024-03-01T00:00:00Z"}]
    [row] = compute_rows([ALICE], orders, prefs, now="2024-03-12T00:00:00Z")
    assert row.next_due_at == datetime(2024, 3, 17, tzinfo=UTC)
    assert row.every_days == 7


def test_manual_reminder_alone_is_the_base():
    prefs = store({"client_id": "c-bob", "every_days": 10, "last_reminded_at": "2024-03-01T00:00:00Z"})
    [row] = compute_rows([BOB], [], prefs, now="2024-03-20T00:00:00Z")
    assert row.next_due_at == datetime(2024, 3, 11, tzinfo=UTC)
    assert row.due_label is DueLabel.PAST_DUE


def test_malformed_order_dates_are_skipped_not_fatal():
    orders = [
        {"id": "o1", "client": "Alice", "order_date": "not-a-date"},
        {"id": "o2", "client": "Alice", "order_date": "2024-01-01T00:00:00Z"},
        {"id": "o3", "client": "Bob", "order_date": None},
    ]
    rows = compute_rows([ALICE, BOB], orders, store(), now="2024-01-10T00:00:00Z")
    assert [r.client_id for r in rows] == ["c-alice", "c-bob"]
    assert rows[0].last_order_at == datetime(2024, 1, 1, tzinfo=UTC)
    assert rows[1].last_order_at is None
    assert rows[1].due_label is DueLabel.UPCOMING


def test_name_join_is_exact_and_case_sensitive():
    latest = latest_order_by_client([
        {"client": "Alice", "order_date": "2024-01-01T00:00:00Z"},
        {"client": "alice", "order_date": "2024-02-01T00:00:00Z"},
        {"client": "Alice", "order_date": "2024-01-15T00:00:00Z"},
    ])
    assert latest["Alice"] == datetime(2024, 1, 15, tzinfo=UTC)
    assert latest["alice"] == datetime(2024, 2, 1, tzinfo=UTC)


def test_classify_uses_local_calendar_day():
    kolkata = ZoneInfo("Asia/Kolkata")
    due = datetime(2024, 1, 31, 20, 0, tzinfo=UTC)    # 1 Feb 01:30 in Kolkata
    now = datetime(2024, 1, 31, 10, 0, tzinfo=UTC)    # 31 Jan 15:30 in Kolkata
    assert classify(due, now) is DueLabel.DUE_TODAY
    assert classify(due, now, kolkata) is DueLabel.UPCOMING


def test_late_by_days():
    [row] = compute_rows([ALICE], [{"client": "Alice", "order_date": "2024-01-01T00:00:00Z"}],
                         store(), now="2024-02-05T00:00:00Z")
    assert late_by_days(row, "2024-02-05T00:00:00Z") == 5
    assert late_by_days(row, "2024-01-20T00:00:00Z") is None


def test_order_history_loose_match_newest_first():
    orders = [
        {"id": "a", "client": " alice ", "order_date": "2024-01-01T00:00:00Z"},
        {"id": "b", "client": "ALICE", "order_date": "2024-03-01T00:00:00Z"},
        {"id": "c", "client": "Alice", "order_date": "bad"},
        {"id": "d", "client": "Bob", "order_date": "2024-04-01T00:00:00Z"},
    ]
    history = order_history(orders, "Alice")
    assert [o["id"] for o in history] == ["b", "a"]
    assert history[0]["order_date"] == datetime(2024, 3, 1, tzinfo=UTC)
