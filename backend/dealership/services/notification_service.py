# Overview: Service-layer operations for in-app notifications; encapsulates business logic and database work.

"""
Notifications are added to the caller's session and committed with the
change they describe, so a rolled-back sale or transfer leaves no notice
behind. Agents without a login have nobody to notify and are skipped.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Agent, Notification, User
from ..models.auth import ROLE_ADMIN, ROLE_SUPER_ADMIN
from ..models.notifications import (
    NOTIFY_BALANCE_ADDED,
    NOTIFY_BALANCE_DEDUCTED,
    NOTIFY_DOCUMENT_STATUS,
    NOTIFY_INVENTORY_TRANSFER,
    NOTIFY_NEW_SALE,
    STATUS_READ,
    STATUS_UNREAD,
)
from ..validation import NotFoundError
from dealership.time_utils import utcnow


logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised for notification errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _amount(cents: int) -> str:
    whole, rest = divmod(abs(cents), 100)
    return f"{'-' if cents < 0 else ''}{whole:,}.{rest:02d}"


def office_user_ids() -> list[int]:
    rows = (
        db.session.query(User.id)
        .filter(User.role.in_((ROLE_SUPER_ADMIN, ROLE_ADMIN)), User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )
    return [r[0] for r in rows]


def agent_user_id(agent: Agent | None) -> int | None:
    if agent is None or not agent.has_user_account or not agent.user_id:
        return None
    user = db.session.get(User, agent.user_id)
    if not user or not user.is_active:
        return None
    return user.id


def send(
    recipient_ids,
    *,
    notification_type: str,
    title: str,
    message: str,
    priority: str = "medium",
    action_url: str | None = None,
    data: dict | None = None,
    sender_user_id: int | None = None,
) -> list[Notification]:
    """Queue one notification per distinct recipient. The caller commits."""
    created = []
    seen = set()
    for user_id in recipient_ids:
        if user_id is None or user_id in seen:
            continue
        seen.add(user_id)
        notification = Notification(
            recipient_user_id=user_id,
            sender_user_id=sender_user_id,
            type=notification_type,
            priority=priority,
            title=title,
            message=message,
            action_url=action_url,
            data=data or {},
        )
        db.session.add(notification)
        created.append(notification)
    return created


def notify_new_sale(sale, agent: Agent | None, *, user_id: int | None = None) -> list[Notification]:
    seller = agent.name if agent else "Company showroom"
    return send(
        office_user_ids(),
        notification_type=NOTIFY_NEW_SALE,
        title="New sale",
        message=(
            f"{seller} sold {sale.document_number} to {sale.customer_name} "
            f"for {_amount(sale.sale_price_cents)}"
        ),
        priority="high",
        action_url=f"/sales/{sale.id}",
        data={
            "sale_id": sale.id,
            "document_number": sale.document_number,
            "sale_type": sale.sale_type,
            "agent_id": agent.id if agent else None,
            "customer_name": sale.customer_name,
            "sale_price_cents": sale.sale_price_cents,
        },
        sender_user_id=user_id,
    )


def notify_document_status(document, old_status: str, *, user_id: int | None = None) -> list[Notification]:
    agent = db.session.get(Agent, document.agent_id) if document.agent_id else None
    return send(
        [agent_user_id(agent)],
        notification_type=NOTIFY_DOCUMENT_STATUS,
        title="Document status updated",
        message=f"Documents for {document.customer_name} moved from {old_status} to {document.status}",
        action_url=f"/documents/{document.id}",
        data={
            "document_id": document.id,
            "old_status": old_status,
            "new_status": document.status,
            "customer_name": document.customer_name,
        },
        sender_user_id=user_id,
    )


def notify_transfer(transfer, source, destination, items_count: int, *, user_id: int | None = None) -> list[Notification]:
    """Tell the agents on either end of a transfer."""
    recipients = []
    for warehouse in (source, destination):
        if warehouse.agent_id:
            recipients.append(agent_user_id(db.session.get(Agent, warehouse.agent_id)))
    return send(
        recipients,
        notification_type=NOTIFY_INVENTORY_TRANSFER,
        title="Inventory transfer",
        message=f"{items_count} vehicle(s) moved from {source.name} to {destination.name} ({transfer.document_number})",
        action_url=f"/transfers/{transfer.id}",
        data={
            "transfer_id": transfer.id,
            "items_count": items_count,
            "from_warehouse": source.name,
            "to_warehouse": destination.name,
        },
        sender_user_id=user_id,
    )


def notify_balance_change(agent: Agent, entry, *, user_id: int | None = None) -> list[Notification]:
    if entry.amount_cents == 0:
        return []
    added = entry.amount_cents > 0
    verb = "added to" if added else "deducted from"
    return send(
        [agent_user_id(agent)],
        notification_type=NOTIFY_BALANCE_ADDED if added else NOTIFY_BALANCE_DEDUCTED,
        title="Balance credited" if added else "Balance debited",
        message=(
            f"{_amount(abs(entry.amount_cents))} {verb} your balance. "
            f"Current balance: {_amount(entry.new_balance_cents)}"
        ),
        priority="high",
        action_url=f"/agents/{agent.id}/transactions",
        data={
            "transaction_type": entry.type,
            "amount_cents": entry.amount_cents,
            "new_balance_cents": entry.new_balance_cents,
            "description": entry.description,
        },
        sender_user_id=user_id,
    )


def list_notifications(user_id: int, *, status: str | None = None, limit: int = 100) -> list[Notification]:
    if status not in (None, "", STATUS_UNREAD, STATUS_READ):
        raise NotificationError(
            f"Unknown notification status: {status}",
            details={"allowed": [STATUS_UNREAD, STATUS_READ]},
        )
    q = db.session.query(Notification).filter_by(recipient_user_id=user_id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Notification.id.desc()).limit(limit).all()


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter_by(recipient_user_id=user_id, status=STATUS_UNREAD)
        .count()
    )


def mark_read(notification_id: int, user_id: int) -> Notification:
    """Mark one of the user's notifications read. Someone else's reads as missing."""
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.recipient_user_id != user_id:
        raise NotFoundError("Notification not found")
    if notification.status != STATUS_READ:
        notification.status = STATUS_READ
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    now = utcnow()
    updated = (
        db.session.query(Notification)
        .filter_by(recipient_user_id=user_id, status=STATUS_UNREAD)
        .update({"status": STATUS_READ, "read_at": now}, synchronize_session=False)
    )
    db.session.commit()
    logger.info("User %s marked %s notifications read", user_id, updated)
    return updated
