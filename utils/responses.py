from __future__ import annotations

from flask import jsonify


def _error(error: str, status: int, detail: str | None = None, **extra):
    payload = {"error": error}
    if detail:
        payload["detail"] = detail
    payload.update(extra)
    return jsonify(payload), status


def ok(data, status: int = 200):
    return jsonify(data), status


def bad_request(msg: str, detail: str | None = None):
    return _error(msg, 400, detail)


def unauthorized(detail: str | None = None):
    return _error("Unauthorized", 401, detail)


def forbidden(detail: str | None = None):
    return _error("Forbidden", 403, detail)


def not_found(resource: str = "Resource"):
    return _error(f"{resource} not found", 404)


def bad_gateway(msg: str, detail: str | None = None, **extra):
    """Upstream (database) call failed; extra keys are echoed back to the client."""
    return _error(msg, 502, detail, **extra)


def server_error(detail: str | None = None):
    return _error("Internal Server Error", 500, detail)
