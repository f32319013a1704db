# tests/conftest.py
import os
import random
import string
import time
from datetime import datetime, timezone

# In-memory DB; must be set before config.py is imported
os.environ["DATABASE_URL"] = "sqlite://"

import jwt as pyjwt
import pytest

from app import create_app
from extensions import db
from models.client import Client
from models.client_reminder import ClientReminder
from models.order import Order
from utils import supabase_jwt

SUPABASE_URL = "https://demo-project.supabase.co"
JWT_SECRET = "test-jwt-secret-0123456789-abcdefghijklmnop"
JWT_AUD = "authenticated"

# Fixed clock for API tests
NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


def make_token(sub="7c9e6679-7425-40de-944b-e07fc1f90ae7", role="STAFF", secret=JWT_SECRET, **overrides):
    now = int(time.time())
    claims = {
        "sub": sub,
        "iat": now,
        "exp": now + 3600,
        "iss": f"{SUPABASE_URL}/auth/v1",
        "aud": JWT_AUD,
        "email": "staff@x.com",
        "app_metadata": {"role": role},
    }
    claims.update(overrides)
    return pyjwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SUPABASE_URL": SUPABASE_URL,
        "SUPABASE_JWT_SECRET": JWT_SECRET,
        "SUPABASE_JWT_AUD": JWT_AUD,
        "SUPABASE_JWT_ISS": None,
        "AUTH_DISABLED": False,
        "RATE_LIMIT_PER_MINUTE": 10_000,
        "REALTIME_WEBHOOK_SECRET": "",
        "REMINDER_PAGE_SIZE": 10,
        "REMINDER_TIMEZONE": "UTC",
        "REMINDER_ORDER_LOOKBACK_DAYS": None,
    })
    app.extensions["reminder_board"].clock = lambda: NOW
    supabase_jwt._rate_cache.clear()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def board(app):
    return app.extensions["reminder_board"]


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


# ---- data helpers
def rand_phone():
    return "98" + "".join(random.choice("0123456789") for _ in range(8))


def rand_name(prefix="QA"):
    suffix = "".join(random.choice(string.ascii_uppercase) for _ in range(5))
    return f"{prefix} {suffix}"


def add_client(name, phone=None):
    c = Client(name=name, phone=phone)
    db.session.add(c)
    db.session.commit()
    return c


def add_order(client_name, order_date):
    o = Order(client=client_name, order_date=order_date)
    db.session.add(o)
    db.session.commit()
    return o


def add_preference(client_id, every_days, last_reminded_at=None):
    p = ClientReminder(client_id=client_id, every_days=every_days, last_reminded_at=last_reminded_at)
    db.session.add(p)
    db.session.commit()
    return p
