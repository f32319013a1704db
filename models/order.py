# models/order.py
import uuid
from sqlalchemy import Uuid
from extensions import db


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Display name of the client, not a FK: the legacy schema joins orders
    # to clients by name
    client = db.Column(db.String, nullable=False, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Order id={self.id} client={self.client} order_date={self.order_date}>"
