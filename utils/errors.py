# utils/errors.py
from flask import jsonify
from werkzeug.exceptions import HTTPException

from reminders.errors import ReminderError


def register_error_handlers(app):
    """Global handlers so every error leaves the API as JSON."""

    @app.errorhandler(400)
    def bad_request(_):
        return jsonify({"error": "Invalid data."}), 400

    @app.errorhandler(404)
    def not_found(_):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(ReminderError)
    def reminder_error(e):
        app.logger.warning("Reminder operation failed: %s", e)
        return jsonify({"error": str(e)}), 502

    @app.errorhandler(Exception)
    def unhandled_exception(e):
        # HTTPException (abort(...)) keeps its own status code
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code

        # log for debugging; no stack trace goes to the client
        app.logger.exception("Unhandled Exception: %s", e)
        return jsonify({"error": "Internal Server Error"}), 500
