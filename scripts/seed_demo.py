from datetime import datetime, timedelta, timezone

from extensions import db
from models.client import Client
from models.client_reminder import ClientReminder
from models.order import Order

# name, phone, days since last order (None = never ordered), cadence override
CLIENTS = [
    ("Asha Traders", "9876543210", 45, None),
    ("Bharat Stores", "+91 98450 12345", 30, None),
    ("Chetan Foods", "09812345678", 10, None),
    ("Deepa Bakery", "98201", 3, 7),
    ("Eshan Retail", None, None, None),
]


def _upsert_client(name: str, phone):
    client = Client.query.filter_by(name=name).first()
    if client:
        client.phone = phone
    else:
        client = Client(name=name, phone=phone)
        db.session.add(client)
        db.session.flush()
    return client


def run():
    now = datetime.now(timezone.utc)
    seeded = []
    for name, phone, days_ago, every_days in CLIENTS:
        client = _upsert_client(name, phone)
        # re-runs leave existing order history alone
        if days_ago is not None and not Order.query.filter_by(client=name).first():
            db.session.add(Order(client=name, order_date=now - timedelta(days=days_ago)))
        if every_days is not None:
            pref = db.session.get(ClientReminder, client.id) or ClientReminder(client_id=client.id)
            pref.every_days = every_days
            db.session.add(pref)
        seeded.append(name)
    db.session.commit()
    print("Seeded clients:")
    for entry in seeded:
        print(f" - {entry}")
