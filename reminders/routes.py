# reminders/routes.py
from __future__ import annotations

import hmac
import math
from datetime import datetime
from typing import Optional

from flask import Blueprint, current_app, request

from utils.casing import dict_keys_to_camel, dict_keys_to_snake
from utils.responses import bad_gateway, bad_request, forbidden, not_found, ok
from utils.supabase_jwt import auth_required

from .board import ReminderBoard
from .dates import format_datetime_label, parse_timestamp, to_iso
from .engine import ReminderRow, late_by_days
from .errors import PreferenceWriteFailure
from .links import build_reminder_link, tel_link
from .preferences import MAX_EVERY_DAYS, clamp_every_days
from .presenter import View, present
from .realtime import ChangeEvent, ChangeFeed

# No internal prefix; app.py mounts this at /api/v1/reminders
bp = Blueprint("reminders", __name__)


def get_board() -> ReminderBoard:
    return current_app.extensions["reminder_board"]


def get_feed() -> ChangeFeed:
    return current_app.extensions["change_feed"]


def _camel_row(row: ReminderRow, board: ReminderBoard, now: datetime, with_late_by: bool = False) -> dict:
    cfg = current_app.config
    data = {
        "client_id": row.client_id,
        "client_name": row.client_name,
        "phone": row.phone,
        "last_order_at": to_iso(row.last_order_at),
        "every_days": row.every_days,
        "last_reminded_at": to_iso(row.last_reminded_at),
        "next_due_at": to_iso(row.next_due_at),
        "due_label": row.due_label.value,
        "whatsapp_link": build_reminder_link(
            row.client_name,
            row.phone,
            row.next_due_at,
            business_name=cfg.get("REMINDER_BUSINESS_NAME") or "Patram Works",
            country_code=cfg.get("WHATSAPP_COUNTRY_CODE") or "91",
            host=cfg.get("MESSAGING_HOST") or "wa.me",
            tz=board.tz,
        ),
        "tel_link": tel_link(row.phone),
    }
    if with_late_by:
        data["late_by_days"] = late_by_days(row, now)
    return dict_keys_to_camel(data)


def _camel_form(client: dict, board: ReminderBoard) -> dict:
    pref = board.preferences.get(client["id"])
    return {
        "clientId": str(client["id"]),
        "clientName": client.get("name"),
        "everyDays": pref.every_days,
        "lastRemindedAt": to_iso(pref.last_reminded_at),
        "mode": "edit" if board.preferences.has(client["id"]) else "add",
    }


def _row_for(board: ReminderBoard, client_id: str, now: datetime) -> Optional[ReminderRow]:
    return next((r for r in board.rows(now) if r.client_id == str(client_id)), None)


@bp.get("")
@auth_required
def list_reminders():
    board = get_board()
    board.ensure_loaded()

    try:
        view = View.parse(request.args.get("view"))
    except ValueError as e:
        return bad_request(str(e))

    default_size = current_app.config.get("REMINDER_PAGE_SIZE", 10)
    max_size = current_app.config.get("REMINDER_MAX_PAGE_SIZE", 100)
    try:
        page = max(1, int(request.args.get("page", 1)))
        page_size = min(max_size, max(1, int(request.args.get("pageSize", default_size))))
    except (TypeError, ValueError):
        page, page_size = 1, default_size

    now = board.now()
    result = present(board.rows(now), view, request.args.get("q"), page, page_size)
    with_late_by = view is View.OUTDATED
    return ok({
        "items": [_camel_row(r, board, now, with_late_by) for r in result.items],
        "view": view.value,
        "page": result.page,
        "pageSize": result.page_size,
        "totalItems": result.total_items,
        "totalPages": result.total_pages,
        "counts": dict_keys_to_camel(result.counts),
        "error": board.error,
        "loadedAt": to_iso(board.loaded_at),
    })


@bp.post("/refresh")
@auth_required
def refresh():
    board = get_board()
    if not board.load():
        return bad_gateway("Failed to load reminders", board.error)
    return ok({"loadedAt": to_iso(board.loaded_at), "clients": len(board.clients), "orders": len(board.orders)})


@bp.get("/new")
@auth_required
def new_reminder_form():
    board = get_board()
    board.ensure_loaded()
    client = board.next_unconfigured_client()
    if not client:
        return not_found("Client")
    return ok({"form": _camel_form(client, board)})


@bp.get("/<client_id>")
@auth_required
def get_reminder(client_id: str):
    board = get_board()
    board.ensure_loaded()
    client = board.find_client(client_id)
    if not client:
        return not_found("Client")

    now = board.now()
    row = _row_for(board, client_id, now)
    return ok({
        "row": _camel_row(row, board, now, with_late_by=True),
        "form": _camel_form(client, board),
    })


@bp.put("/<client_id>")
@auth_required
def save_reminder(client_id: str):
    board = get_board()
    board.ensure_loaded()
    client = board.find_client(client_id)
    if not client:
        return not_found("Client")

    data = dict_keys_to_snake(request.get_json(silent=True) or {})
    if not isinstance(data, dict):
        return bad_request("JSON object expected")

    current = board.preferences.get(client_id)
    raw_every = data.get("every_days", current.every_days)
    if isinstance(raw_every, float) and not math.isfinite(raw_every):
        return bad_request(f"invalid everyDays: {raw_every}")
    every_days = clamp_every_days(raw_every)
    max_every = current_app.config.get("REMINDER_MAX_EVERY_DAYS") or MAX_EVERY_DAYS
    if every_days > max_every:
        return bad_request(f"everyDays must be at most {max_every}")

    # Inline cadence edits omit lastRemindedAt and keep the stored value
    last_reminded_at = current.last_reminded_at
    if "last_reminded_at" in data:
        raw = data.get("last_reminded_at")
        last_reminded_at = parse_timestamp(raw)
        if raw not in (None, "") and last_reminded_at is None:
            return bad_request(f"invalid lastRemindedAt: {raw}")

    try:
        board.save_preference(client_id, every_days, last_reminded_at)
    except PreferenceWriteFailure as e:
        current_app.logger.warning("Reminder upsert failed for %s: %s", client_id, e.detail)
        return bad_gateway(
            "Failed to save reminder",
            e.detail,
            attempted={"everyDays": every_days, "lastRemindedAt": to_iso(last_reminded_at)},
        )

    now = board.now()
    return ok({
        "row": _camel_row(_row_for(board, client_id, now), board, now, with_late_by=True),
        "form": _camel_form(client, board),
    })


@bp.get("/<client_id>/orders")
@auth_required
def client_orders(client_id: str):
    board = get_board()
    board.ensure_loaded()
    client = board.find_client(client_id)
    if not client:
        return not_found("Client")

    items = [
        {
            "id": o["id"],
            "orderDate": to_iso(o["order_date"]),
            "label": format_datetime_label(o["order_date"], board.tz),
        }
        for o in board.order_history(client.get("name") or "")
    ]
    return ok({"clientName": client.get("name"), "items": items})


@bp.post("/realtime")
def realtime_webhook():
    secret = current_app.config.get("REALTIME_WEBHOOK_SECRET") or ""
    if secret:
        sent = request.headers.get("X-Webhook-Secret", "")
        if not hmac.compare_digest(sent.encode(), secret.encode()):
            return forbidden("Invalid webhook secret")

    try:
        event = ChangeEvent.from_webhook(request.get_json(silent=True))
    except ValueError as e:
        return bad_request("Invalid change event", str(e))

    delivered = get_feed().publish(event)
    return ok({"table": event.table, "type": event.type.value, "delivered": delivered}, 202)
