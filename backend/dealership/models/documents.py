# Overview: Registration paperwork tracking for sold vehicles.

from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


DOC_PENDING_SUBMISSION = "pending_submission"
DOC_SUBMITTED = "submitted_to_manufacturer"
DOC_RECEIVED = "received_from_manufacturer"
DOC_SENT_TO_POS = "sent_to_point_of_sale"
DOC_COMPLETED = "completed"

# Ordered; a document only ever moves one step forward
DOCUMENT_STATUSES = (
    DOC_PENDING_SUBMISSION,
    DOC_SUBMITTED,
    DOC_RECEIVED,
    DOC_SENT_TO_POS,
    DOC_COMPLETED,
)


class DocumentTracking(db.Model):
    """
    One tracking record per sale.

    Customer and vehicle fields are copied from the sale so the record reads
    on its own after the vehicle's inventory row changes.
    """
    __tablename__ = "document_tracking"
    __table_args__ = (
        db.Index("ix_document_tracking_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, unique=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(120), nullable=False)
    customer_national_id = db.Column(db.String(32), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    vehicle_description = db.Column(db.String(160), nullable=True)
    motor_fingerprint = db.Column(db.String(64), nullable=False)
    chassis_number = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(32), nullable=False, default=DOC_PENDING_SUBMISSION)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    stages = db.relationship(
        "DocumentStage",
        backref="document",
        lazy=True,
        order_by="DocumentStage.id",
    )

    @property
    def progress_percent(self) -> int:
        position = DOCUMENT_STATUSES.index(self.status) + 1
        return position * 100 // len(DOCUMENT_STATUSES)

    def to_dict(self, include_stages: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_id": self.sale_id,
            "agent_id": self.agent_id,
            "customer_name": self.customer_name,
            "customer_national_id": self.customer_national_id,
            "customer_phone": self.customer_phone,
            "vehicle_description": self.vehicle_description,
            "motor_fingerprint": self.motor_fingerprint,
            "chassis_number": self.chassis_number,
            "status": self.status,
            "progress_percent": self.progress_percent,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_stages:
            data["stages"] = [stage.to_dict() for stage in self.stages]
        return data


class DocumentStage(db.Model):
    """Append-only history row; one per status the document has reached."""
    __tablename__ = "document_stages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("document_tracking.id"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "occurred_at": to_utc_z(self.occurred_at),
            "updated_by_user_id": self.updated_by_user_id,
            "notes": self.notes,
        }
