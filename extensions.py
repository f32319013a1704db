# extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS

db = SQLAlchemy()


def init_cors(app):
    allowed_origins = app.config.get(
        "CORS_ORIGINS",
        ["http://localhost:3000", "http://localhost:5173"],
    )

    # Apply CORS globally before any auth/route middleware
    CORS(
        app,
        resources={r"/api/v1/*": {"origins": allowed_origins}},
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Webhook-Secret"],
        supports_credentials=False,
    )
