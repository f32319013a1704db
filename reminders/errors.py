# reminders/errors.py
from __future__ import annotations


class ReminderError(Exception):
    """Base class for failures surfaced by the reminders feature."""


class LoadFailure(ReminderError):
    """Fetching clients, orders or reminder preferences failed."""

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        self.detail = detail
        super().__init__(f"Failed to load {resource}: {detail}")


class PreferenceWriteFailure(ReminderError):
    """Upserting a client's reminder preference failed; nothing was cached."""

    def __init__(self, client_id: str, detail: str):
        self.client_id = client_id
        self.detail = detail
        super().__init__(f"Failed to save reminder for client {client_id}: {detail}")
