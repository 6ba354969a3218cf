from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


SALE_TYPE_AGENT = "agent_direct"
SALE_TYPE_ON_BEHALF = "manager_on_behalf"
SALE_TYPE_COMPANY = "company_direct"

SALE_TYPES = (SALE_TYPE_AGENT, SALE_TYPE_ON_BEHALF, SALE_TYPE_COMPANY)
AGENT_SALE_TYPES = (SALE_TYPE_AGENT, SALE_TYPE_ON_BEHALF)


class Sale(db.Model):
    """
    A completed vehicle sale.

    Agent sales (direct or recorded by a manager on behalf of an offline
    agent) carry the commission split; company sales keep the whole profit.
    Financial fields are snapshots taken at sale time and never recomputed.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_type_created", "sale_type", "created_at"),
        db.Index("ix_sales_agent_created", "agent_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False, unique=True)
    sale_type = db.Column(db.String(24), nullable=False)

    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, unique=True)

    customer_name = db.Column(db.String(120), nullable=False)
    customer_national_id = db.Column(db.String(32), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)
    customer_id_card_image_url = db.Column(db.String(512), nullable=True)

    sale_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)
    commission_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    agent_commission_cents = db.Column(db.Integer, nullable=False, default=0)
    company_share_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    agent = db.relationship("Agent", foreign_keys=[agent_id])
    item = db.relationship("InventoryItem", foreign_keys=[inventory_item_id])

    def to_dict(self) -> dict:
        item = self.item
        return {
            "id": self.id,
            "document_number": self.document_number,
            "sale_type": self.sale_type,
            "agent_id": self.agent_id,
            "agent_name": self.agent.name if self.agent else None,
            "warehouse_id": self.warehouse_id,
            "inventory_item_id": self.inventory_item_id,
            "vehicle": {
                "brand": item.brand,
                "model": item.model,
                "color": item.color,
                "motor_fingerprint": item.motor_fingerprint,
                "chassis_number": item.chassis_number,
            } if item else None,
            "customer_name": self.customer_name,
            "customer_national_id": self.customer_national_id,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "customer_id_card_image_url": self.customer_id_card_image_url,
            "sale_price_cents": self.sale_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "profit_cents": self.profit_cents,
            "commission_rate_bps": self.commission_rate_bps,
            "agent_commission_cents": self.agent_commission_cents,
            "company_share_cents": self.company_share_cents,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
