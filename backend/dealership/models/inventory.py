# Overview: Serialized vehicle inventory and warehouse transfer documents.

from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


VEHICLE_TYPES = ("motorcycle", "tricycle", "electric_scooter", "tuktuk")

ITEM_AVAILABLE = "available"
ITEM_RESERVED = "reserved"
ITEM_SOLD = "sold"
ITEM_TRANSFERRED = "transferred"

ITEM_STATUSES = (ITEM_AVAILABLE, ITEM_RESERVED, ITEM_SOLD, ITEM_TRANSFERRED)

# Statuses from which an item may be sold
SELLABLE_STATUSES = (ITEM_AVAILABLE, ITEM_TRANSFERRED)


class InventoryItem(db.Model):
    """
    One physical vehicle, identified by motor fingerprint and chassis number.

    Vehicles are serialized: there is no quantity, an item is either in a
    warehouse or sold. agent_commission_bps is set when the item is moved to
    an agent warehouse and overrides the agent's default rate.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_warehouse_status", "current_warehouse_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    motor_fingerprint = db.Column(db.String(64), nullable=False, unique=True)
    chassis_number = db.Column(db.String(64), nullable=False, unique=True)

    vehicle_type = db.Column(db.String(32), nullable=False, default="motorcycle")
    brand = db.Column(db.String(64), nullable=False)
    model = db.Column(db.String(64), nullable=False)
    color = db.Column(db.String(32), nullable=True)
    country_of_origin = db.Column(db.String(64), nullable=True)
    manufacturing_year = db.Column(db.Integer, nullable=True)

    purchase_price_cents = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    current_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ITEM_AVAILABLE)
    agent_commission_bps = db.Column(db.Integer, nullable=True)

    motor_fingerprint_image_url = db.Column(db.String(512), nullable=True)
    chassis_number_image_url = db.Column(db.String(512), nullable=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", use_alter=True, name="fk_inventory_items_sale_id"), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    warehouse = db.relationship("Warehouse", foreign_keys=[current_warehouse_id])

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "motor_fingerprint": self.motor_fingerprint,
            "chassis_number": self.chassis_number,
            "vehicle_type": self.vehicle_type,
            "brand": self.brand,
            "model": self.model,
            "color": self.color,
            "country_of_origin": self.country_of_origin,
            "manufacturing_year": self.manufacturing_year,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "current_warehouse_id": self.current_warehouse_id,
            "status": self.status,
            "agent_commission_bps": self.agent_commission_bps,
            "motor_fingerprint_image_url": self.motor_fingerprint_image_url,
            "chassis_number_image_url": self.chassis_number_image_url,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class WarehouseTransfer(db.Model):
    """
    Movement of one or more vehicles between warehouses.

    Transfers are recorded as completed documents; there is no
    approve/dispatch lifecycle for vehicles moved by the office.
    """
    __tablename__ = "warehouse_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False, unique=True)

    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    # Receiving agent, when the destination is an agent warehouse
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship(
        "WarehouseTransferLine",
        backref="transfer",
        lazy=True,
        order_by="WarehouseTransferLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "from_warehouse_id": self.from_warehouse_id,
            "to_warehouse_id": self.to_warehouse_id,
            "agent_id": self.agent_id,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
            "total_purchase_value_cents": sum(line.purchase_price_cents for line in self.lines),
        }


class WarehouseTransferLine(db.Model):
    __tablename__ = "warehouse_transfer_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("warehouse_transfers.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    purchase_price_cents = db.Column(db.Integer, nullable=False)
    commission_bps = db.Column(db.Integer, nullable=True)

    item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "purchase_price_cents": self.purchase_price_cents,
            "commission_bps": self.commission_bps,
        }
