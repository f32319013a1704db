# reminders/links.py
"""WhatsApp click-to-chat links for reminder outreach. Pure string building, no I/O."""

from __future__ import annotations

import re
from datetime import timezone, tzinfo
from typing import Any, Optional
from urllib.parse import quote

from .dates import format_datetime_label, parse_timestamp

DEFAULT_COUNTRY_CODE = "91"
DEFAULT_HOST = "wa.me"
MIN_DIGITS = 8

_NON_DIGITS = re.compile(r"\D")
_NON_DIALABLE = re.compile(r"[^+\d]")


def to_messaging_number(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """Digits-only international number, or None if fewer than 8 digits remain."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", str(phone))
    cc = _NON_DIGITS.sub("", country_code or "")
    if cc and digits.startswith(cc) and len(digits) == len(cc) + 10:
        return digits
    if cc and len(digits) == 10:
        return cc + digits
    # domestic trunk prefix: 0 + 10 digits
    if cc and digits.startswith("0") and len(digits) == 11:
        return cc + digits[1:]
    return digits if len(digits) >= MIN_DIGITS else None


def tel_link(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    dialable = _NON_DIALABLE.sub("", str(phone))
    return f"tel:{dialable}" if dialable else None


def reminder_message(client_name: str, next_due_at: Any = None,
                     business_name: str = "Patram Works",
                     tz: tzinfo = timezone.utc) -> str:
    when = ""
    if parse_timestamp(next_due_at) is not None:
        when = f" on {format_datetime_label(next_due_at, tz)}"
    return "\n".join([
        f"Hi {client_name}, {business_name} here.",
        f"Friendly reminder for your next order{when}.",
        "Thank you!",
    ])


def build_reminder_link(client_name: str, phone: Optional[str], next_due_at: Any = None, *,
                        business_name: str = "Patram Works",
                        country_code: str = DEFAULT_COUNTRY_CODE,
                        host: str = DEFAULT_HOST,
                        tz: tzinfo = timezone.utc) -> Optional[str]:
    """Deep link opening a chat with the client and a pre-filled reminder, or None."""
    number = to_messaging_number(phone, country_code)
    if not number:
        return None
    msg = reminder_message(client_name, next_due_at, business_name, tz)
    # same escaping as JavaScript's encodeURIComponent
    text = quote(msg, safe="-_.!~*'()")
    return f"https://{host}/{number}?text={text}"
