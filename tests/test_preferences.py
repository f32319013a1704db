from datetime import datetime, timezone

import pytest

from reminders.errors import PreferenceWriteFailure
from reminders.preferences import PreferenceStore, ReminderPreference, clamp_every_days

UTC = timezone.utc


class RecordingWriter:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def upsert_preference(self, client_id, every_days, last_reminded_at):
        self.calls.append((client_id, every_days, last_reminded_at))
        if self.fail:
            raise PreferenceWriteFailure(client_id, "connection reset")
        # the server echoes timestamps back as strings
        stamp = last_reminded_at.isoformat() if last_reminded_at else None
        return {"client_id": client_id, "every_days": every_days, "last_reminded_at": stamp}


@pytest.mark.parametrize("raw, expected", [
    (0, 1), (-5, 1), (None, 1), ("abc", 1), ("14", 14), (7, 7),
    (float("inf"), 1), (float("-inf"), 1), (float("nan"), 1),
])
def test_clamp_every_days(raw, expected):
    assert clamp_every_days(raw) == expected


def test_get_defaults_when_missing():
    store = PreferenceStore(RecordingWriter())
    pref = store.get("c1")
    assert pref == ReminderPreference(client_id="c1", every_days=30, last_reminded_at=None)
    assert not store.has("c1")


def test_custom_default_cadence():
    store = PreferenceStore(RecordingWriter(), default_every_days=45)
    assert store.get("c1").every_days == 45


def test_load_replaces_cache_and_tolerates_bad_rows():
    store = PreferenceStore(RecordingWriter())
    store.load([
        {"client_id": "c1", "every_days": 10, "last_reminded_at": "2024-01-02T00:00:00Z"},
        {"client_id": "c2", "every_days": 0, "last_reminded_at": "corrupt"},
        {"client_id": None, "every_days": 5},
    ])
    assert len(store) == 2
    assert store.get("c1").last_reminded_at == datetime(2024, 1, 2, tzinfo=UTC)
    assert store.get("c2") == ReminderPreference("c2", 1, None)

    store.load([])
    assert not store.has("c1")


def test_upsert_clamps_writes_through_and_caches_confirmed_record():
    writer = RecordingWriter()
    store = PreferenceStore(writer)
    when = datetime(2024, 2, 1, 8, 0, tzinfo=UTC)

    pref = store.upsert("c1", 0, when)

    assert writer.calls == [("c1", 1, when)]
    assert pref == ReminderPreference("c1", 1, when)
    assert store.get("c1") == pref
    assert store.has("c1")


def test_failed_upsert_leaves_cache_untouched():
    writer = RecordingWriter()
    store = PreferenceStore(writer)
    store.load([{"client_id": "c1", "every_days": 10, "last_reminded_at": None}])

    writer.fail = True
    with pytest.raises(PreferenceWriteFailure) as exc:
        store.upsert("c1", 20, None)

    assert exc.value.client_id == "c1"
    assert store.get("c1").every_days == 10
