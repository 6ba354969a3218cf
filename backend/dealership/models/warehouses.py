from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


WAREHOUSE_TYPE_MAIN = "main"
WAREHOUSE_TYPE_SHOWROOM = "showroom"
WAREHOUSE_TYPE_AGENT = "agent"
WAREHOUSE_TYPE_BRANCH = "branch"

WAREHOUSE_TYPES = (
    WAREHOUSE_TYPE_MAIN,
    WAREHOUSE_TYPE_SHOWROOM,
    WAREHOUSE_TYPE_AGENT,
    WAREHOUSE_TYPE_BRANCH,
)

# Warehouses whose stock belongs to the company (sellable by showroom staff)
COMPANY_WAREHOUSE_TYPES = (WAREHOUSE_TYPE_MAIN, WAREHOUSE_TYPE_SHOWROOM, WAREHOUSE_TYPE_BRANCH)


class Warehouse(db.Model):
    """
    Stock location.

    Agent warehouses are created together with the agent and carry the
    owning agent_id; items moved into them are on consignment to that agent.
    """
    __tablename__ = "warehouses"
    __table_args__ = (
        db.Index("ix_warehouses_type_active", "type", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    type = db.Column(db.String(16), nullable=False, default=WAREHOUSE_TYPE_MAIN)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Set for agent warehouses only
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id", use_alter=True, name="fk_warehouses_agent_id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} type={self.type}>"

    @property
    def is_company_stock(self) -> bool:
        return self.type in COMPANY_WAREHOUSE_TYPES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "location": self.location,
            "is_active": self.is_active,
            "agent_id": self.agent_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DocumentSequence(db.Model):
    """Per-document-type counter backing human-readable document numbers."""
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_document_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
