# Overview: In-app notifications addressed to a single user.

from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


NOTIFY_NEW_SALE = "new_sale"
NOTIFY_DOCUMENT_STATUS = "document_status_update"
NOTIFY_INVENTORY_TRANSFER = "inventory_transfer"
NOTIFY_BALANCE_ADDED = "balance_added"
NOTIFY_BALANCE_DEDUCTED = "balance_deducted"

NOTIFICATION_TYPES = (
    NOTIFY_NEW_SALE,
    NOTIFY_DOCUMENT_STATUS,
    NOTIFY_INVENTORY_TRANSFER,
    NOTIFY_BALANCE_ADDED,
    NOTIFY_BALANCE_DEDUCTED,
)

PRIORITIES = ("low", "medium", "high")

STATUS_UNREAD = "unread"
STATUS_READ = "read"


class Notification(db.Model):
    """
    Event notice written in the same commit as the change it reports.

    Only the recipient may list it or mark it read.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient_status", "recipient_user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    sender_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    type = db.Column(db.String(32), nullable=False)
    priority = db.Column(db.String(16), nullable=False, default="medium")
    title = db.Column(db.String(160), nullable=False)
    message = db.Column(db.Text, nullable=False)
    action_url = db.Column(db.String(255), nullable=True)
    data = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_UNREAD)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_user_id": self.recipient_user_id,
            "sender_user_id": self.sender_user_id,
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
            "message": self.message,
            "action_url": self.action_url,
            "data": self.data or {},
            "status": self.status,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }
