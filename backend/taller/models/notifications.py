from __future__ import annotations

from ..extensions import db
from ..enums import NotificationType
from ..time_utils import to_utc_z
from .types import enum_type


class Notification(db.Model):
    """
    Per-user inbox entry emitted after workflow transitions.

    Written after the transition commits; a lost notification never undoes
    the transition that produced it.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(enum_type(NotificationType, "notification_type"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # Plain integer references; order deletion removes matching rows explicitly
    transfer_id = db.Column(db.Integer, nullable=True)
    order_id = db.Column(db.Integer, nullable=True, index=True)
    reposition_id = db.Column(db.Integer, nullable=True, index=True)

    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "transfer_id": self.transfer_id,
            "order_id": self.order_id,
            "reposition_id": self.reposition_id,
            "read": self.read,
            "created_at": to_utc_z(self.created_at),
        }
