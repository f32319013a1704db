# models/client_reminder.py
from sqlalchemy import CheckConstraint, Uuid
from extensions import db


class ClientReminder(db.Model):
    __tablename__ = "client_reminders"
    __table_args__ = (
        CheckConstraint("every_days >= 1", name="client_reminders_every_days_check"),
    )

    # One row per client; upserts conflict on this key
    client_id = db.Column(
        Uuid(as_uuid=False),
        db.ForeignKey("clients.id", ondelete="CASCADE"),
        primary_key=True,
    )
    every_days = db.Column(db.Integer, nullable=False, server_default="30")
    last_reminded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ClientReminder client_id={self.client_id} every_days={self.every_days}>"
