import random
from datetime import datetime, timedelta, timezone

import pytest

from reminders.engine import DueLabel, ReminderRow
from reminders.presenter import (
    View,
    bucket_counts,
    clamp_page,
    paginate,
    present,
    search,
    select_bucket,
    sort_rows,
    total_pages,
)

BASE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def row(client_id, label, due_offset_days=0, name=None, phone=None):
    return ReminderRow(
        client_id=client_id,
        client_name=name or f"Client {client_id}",
        phone=phone,
        last_order_at=None,
        every_days=30,
        last_reminded_at=None,
        next_due_at=BASE + timedelta(days=due_offset_days),
        due_label=label,
    )


@pytest.fixture
def rows():
    return [
        row("1", DueLabel.UPCOMING, 5, "Asha Traders", "9876543210"),
        row("2", DueLabel.PAST_DUE, -3, "Bharat Stores", "9845012345"),
        row("3", DueLabel.DUE_TODAY, 0, "Chetan Foods", None),
        row("4", DueLabel.PAST_DUE, -10, "Deepa Bakery", "9820100000"),
        row("5", DueLabel.UPCOMING, 2, "asha textiles", "9000000001"),
    ]


def test_select_bucket(rows):
    assert [r.client_id for r in select_bucket(rows, View.OUTDATED)] == ["2", "4"]
    assert [r.client_id for r in select_bucket(rows, View.UPCOMING)] == ["1", "3", "5"]
    assert len(select_bucket(rows, View.ALL)) == len(rows)


def test_view_parse():
    assert View.parse(None) is View.ALL
    assert View.parse(" Outdated ") is View.OUTDATED
    with pytest.raises(ValueError):
        View.parse("someday")


def test_search_name_and_phone_case_insensitive(rows):
    assert [r.client_id for r in search(rows, "ASHA")] == ["1", "5"]
    assert [r.client_id for r in search(rows, "98450")] == ["2"]
    assert search(rows, "   ") == rows
    assert search(rows, None) == rows


def test_sort_by_bucket_then_due_date(rows):
    assert [r.client_id for r in sort_rows(rows)] == ["4", "2", "3", "5", "1"]


def test_sort_is_stable_and_idempotent():
    same = [row(str(i), DueLabel.UPCOMING, 1) for i in range(6)]
    assert [r.client_id for r in sort_rows(same)] == [str(i) for i in range(6)]

    mixed = [row(str(i), random.choice(list(DueLabel)), random.randint(-3, 3)) for i in range(40)]
    once = sort_rows(mixed)
    assert sort_rows(once) == once


def test_counts_ignore_search_and_view(rows):
    counts = bucket_counts(rows)
    assert counts == {"all": 5, "past_due": 2, "due_today": 1, "upcoming": 3, "outdated": 2}
    assert counts["all"] == counts["past_due"] + counts["upcoming"]

    for q in ("", "asha", "zzz"):
        page = present(rows, View.OUTDATED, q, 1, 2)
        assert page.counts == counts


@pytest.mark.parametrize("page_size", [1, 2, 3, 7])
def test_pages_cover_filtered_set_exactly(rows, page_size):
    filtered = sort_rows(select_bucket(rows, View.ALL))
    pages = total_pages(len(filtered), page_size)
    seen = []
    for p in range(1, pages + 1):
        seen.extend(paginate(filtered, p, page_size))
    assert seen == filtered


def test_page_clamping():
    assert total_pages(0, 10) == 1
    assert total_pages(21, 10) == 3
    assert clamp_page(9, 21, 10) == 3
    assert clamp_page(0, 21, 10) == 1
    assert clamp_page(5, 0, 10) == 1


def test_present_clamps_page_after_filter_shrinks(rows):
    page = present(rows, View.ALL, None, page=3, page_size=2)
    assert page.page == 3
    assert [r.client_id for r in page.items] == ["1"]

    page = present(rows, View.OUTDATED, None, page=3, page_size=2)
    assert page.page == 1
    assert page.total_pages == 1
    assert page.total_items == 2
    assert [r.client_id for r in page.items] == ["4", "2"]
