# models/client.py
import uuid
from sqlalchemy import Uuid
from extensions import db


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String, nullable=False, index=True)
    phone = db.Column(db.String)

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name}>"
