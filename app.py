# app.py
import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env before importing config/extensions
ENV_PATH = Path(__file__).resolve().with_name(".env")
load_dotenv(dotenv_path=ENV_PATH)

from flask import Flask, request
from sqlalchemy import text

from config import Config
from extensions import db, init_cors
from reminders.board import ReminderBoard
from reminders.realtime import ChangeFeed
from reminders.repository import ReminderRepository
from utils.errors import register_error_handlers
from utils.responses import ok


def _build_board(app) -> ReminderBoard:
    return ReminderBoard(
        ReminderRepository(),
        default_every_days=app.config.get("REMINDER_DEFAULT_EVERY_DAYS", 30),
        tz=ZoneInfo(app.config.get("REMINDER_TIMEZONE") or "UTC"),
        order_lookback_days=app.config.get("REMINDER_ORDER_LOOKBACK_DAYS"),
    )


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    init_cors(app)
    register_error_handlers(app)

    # Answer CORS preflight (OPTIONS) globally
    @app.before_request
    def _handle_cors_preflight():
        if request.method == "OPTIONS":
            return "", 204

    # One board and one change feed per app; routes read them from app.extensions
    feed = ChangeFeed()
    board = _build_board(app)
    board.attach(feed)
    app.extensions["change_feed"] = feed
    app.extensions["reminder_board"] = board

    if not app.config.get("REALTIME_WEBHOOK_SECRET") and not app.config.get("TESTING"):
        app.logger.warning("REALTIME_WEBHOOK_SECRET is not set; /api/v1/reminders/realtime accepts unauthenticated calls")

    from reminders.routes import bp as reminders_bp

    app.register_blueprint(reminders_bp, url_prefix="/api/v1/reminders")

    @app.get("/api/v1/health")
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
            detail = None
        except Exception as e:
            db.session.rollback()
            db_ok = False
            detail = str(e)

        payload = {
            "status": "ok" if db_ok else "error",
            "db": "ok" if db_ok else "error",
        }
        if detail and not db_ok:
            payload["detail"] = detail
        return ok(payload, 200 if db_ok else 500)

    @app.cli.command("seed_demo")
    def seed_demo_cmd():
        from scripts.seed_demo import run as seed_demo_run
        seed_demo_run()

    return app


app = create_app()

if __name__ == "__main__":
    with app.app_context():
        # optional: create tables when not using migrations
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning("DB create_all skipped or failed: %s", e)

    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
