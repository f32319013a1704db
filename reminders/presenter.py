# reminders/presenter.py
"""Bucket filter, search, ordering and pagination over derived reminder rows."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .engine import DueLabel, ReminderRow


class View(str, Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    OUTDATED = "outdated"

    @classmethod
    def parse(cls, value: Optional[str]) -> "View":
        try:
            return cls((value or cls.ALL.value).strip().lower())
        except ValueError:
            raise ValueError(f"invalid view: {value}") from None


_VIEW_LABELS = {
    View.ALL: None,
    View.UPCOMING: {DueLabel.DUE_TODAY, DueLabel.UPCOMING},
    View.OUTDATED: {DueLabel.PAST_DUE},
}


def select_bucket(rows: Sequence[ReminderRow], view: View) -> List[ReminderRow]:
    labels = _VIEW_LABELS[View(view)]
    if labels is None:
        return list(rows)
    return [r for r in rows if r.due_label in labels]


def search(rows: Sequence[ReminderRow], query: Optional[str]) -> List[ReminderRow]:
    q = (query or "").strip().lower()
    if not q:
        return list(rows)
    return [
        r for r in rows
        if q in r.client_name.lower() or q in (r.phone or "").lower()
    ]


def sort_rows(rows: Sequence[ReminderRow]) -> List[ReminderRow]:
    # sorted() is stable: equal (rank, next_due_at) keep their input order
    return sorted(rows, key=lambda r: (r.due_label.rank, r.next_due_at))


def total_pages(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, count: int, page_size: int) -> int:
    return min(max(1, page), total_pages(count, page_size))


def paginate(rows: Sequence[ReminderRow], page: int, page_size: int) -> List[ReminderRow]:
    start = (page - 1) * page_size
    return list(rows[start:start + page_size])


def bucket_counts(rows: Sequence[ReminderRow]) -> Dict[str, int]:
    """Totals for the view chips. Pass the unfiltered, unsearched rows."""
    past_due = due_today = upcoming = 0
    for r in rows:
        if r.due_label is DueLabel.PAST_DUE:
            past_due += 1
        elif r.due_label is DueLabel.DUE_TODAY:
            due_today += 1
        else:
            upcoming += 1
    return {
        "all": len(rows),
        "past_due": past_due,
        "due_today": due_today,
        "upcoming": due_today + upcoming,
        "outdated": past_due,
    }


@dataclass
class ReminderPage:
    items: List[ReminderRow]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    counts: Dict[str, int] = field(default_factory=dict)


def present(rows: Sequence[ReminderRow], view: View = View.ALL, query: Optional[str] = None,
            page: int = 1, page_size: int = 10) -> ReminderPage:
    filtered = sort_rows(search(select_bucket(rows, view), query))
    page = clamp_page(page, len(filtered), page_size)
    return ReminderPage(
        items=paginate(filtered, page, page_size),
        page=page,
        page_size=page_size,
        total_items=len(filtered),
        total_pages=total_pages(len(filtered), page_size),
        counts=bucket_counts(rows),
    )
