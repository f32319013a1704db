# config.py
import os
import socket
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse


def _int_env(name: str, default):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _prefer_ipv4(uri: str) -> str:
    """Pin Supabase hosts to an IPv4 address via 'hostaddr' in the DSN query.

    Serverless hosts often resolve the Supabase pooler to an unreachable IPv6
    address. Also enforces sslmode=require for those hosts.
    """
    try:
        parsed = urlparse(uri)
        host = parsed.hostname or ""
        if not (host.endswith("supabase.co") or host.endswith("supabase.com")):
            return uri

        q = dict(parse_qsl(parsed.query, keep_blank_values=True))
        q.setdefault("sslmode", "require")
        if "hostaddr" not in q:
            infos = socket.getaddrinfo(host, parsed.port or 5432, socket.AF_INET, socket.SOCK_STREAM)
            if infos:
                q["hostaddr"] = infos[0][4][0]

        return urlunparse((
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            urlencode(q),
            parsed.fragment,
        ))
    except Exception:
        # Any resolver failure keeps the original URI
        return uri


class Config:
    # Supabase project URL (e.g., https://<ref>.supabase.co)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    # Optional audience to validate against (if configured in Supabase)
    SUPABASE_JWT_AUD = os.getenv("SUPABASE_JWT_AUD")
    # Optional issuer override (defaults to f"{SUPABASE_URL}/auth/v1")
    SUPABASE_JWT_ISS = os.getenv("SUPABASE_JWT_ISS")
    # HS256 projects sign access tokens with this secret
    SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
    ALLOWED_ROLES = os.getenv("ALLOWED_ROLES", "STAFF,MANAGER,ADMIN")
    # Local development only: skips bearer token verification
    AUTH_DISABLED = os.getenv("AUTH_DISABLED", "0") == "1"
    # Requests per client IP per minute on authenticated routes
    RATE_LIMIT_PER_MINUTE = _int_env("RATE_LIMIT_PER_MINUTE", 60)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if not SQLALCHEMY_DATABASE_URI:
        raise RuntimeError("DATABASE_URL/SQLALCHEMY_DATABASE_URI is not set in the environment/.env")

    # Old Heroku-style 'postgres://' URLs
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql+psycopg2://", 1)

    SQLALCHEMY_DATABASE_URI = _prefer_ipv4(SQLALCHEMY_DATABASE_URI)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "0") == "1"
    # SQLite uses a static/singleton pool that rejects sizing options
    SQLALCHEMY_ENGINE_OPTIONS = {} if SQLALCHEMY_DATABASE_URI.startswith("sqlite") else {
        "pool_pre_ping": True,
        "pool_recycle": _int_env("DB_POOL_RECYCLE", 1800),
        "pool_size": _int_env("DB_POOL_SIZE", 5),
        "max_overflow": _int_env("DB_MAX_OVERFLOW", 10),
    }

    # CORS
    _cors_from_env = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    CORS_ORIGINS = _cors_from_env or [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Reminders
    REMINDER_DEFAULT_EVERY_DAYS = _int_env("REMINDER_DEFAULT_EVERY_DAYS", 30)
    REMINDER_MAX_EVERY_DAYS = _int_env("REMINDER_MAX_EVERY_DAYS", 3650)
    REMINDER_PAGE_SIZE = _int_env("REMINDER_PAGE_SIZE", 10)
    REMINDER_MAX_PAGE_SIZE = _int_env("REMINDER_MAX_PAGE_SIZE", 100)
    # Calendar days (due today / past due) are evaluated in this zone
    REMINDER_TIMEZONE = os.getenv("REMINDER_TIMEZONE", "UTC")
    # Only orders newer than this many days feed the engine; unset loads all
    REMINDER_ORDER_LOOKBACK_DAYS = _int_env("REMINDER_ORDER_LOOKBACK_DAYS", None)
    REMINDER_BUSINESS_NAME = os.getenv("REMINDER_BUSINESS_NAME", "Patram Works")

    # WhatsApp deep links
    WHATSAPP_COUNTRY_CODE = os.getenv("WHATSAPP_COUNTRY_CODE", "91")
    MESSAGING_HOST = os.getenv("MESSAGING_HOST", "wa.me")

    # Shared secret sent by the database webhook as X-Webhook-Secret
    REALTIME_WEBHOOK_SECRET = os.getenv("REALTIME_WEBHOOK_SECRET", "")
