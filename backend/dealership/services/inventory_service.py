# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Vehicle inventory.

Each InventoryItem is one physical vehicle. Status and location only change
through transfers (transfer_service) and sales (sales_service); the edit
endpoint covers descriptive fields and prices.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem, Warehouse
from ..models.inventory import ITEM_SOLD, ITEM_STATUSES, VEHICLE_TYPES
from ..models.warehouses import COMPANY_WAREHOUSE_TYPES, WAREHOUSE_TYPES
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_inventory_item,
    validate_payload,
)
from . import list_filters


ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "motor_fingerprint",
        "chassis_number",
        "vehicle_type",
        "brand",
        "model",
        "color",
        "country_of_origin",
        "manufacturing_year",
        "purchase_price_cents",
        "sale_price_cents",
        "current_warehouse_id",
        "motor_fingerprint_image_url",
        "chassis_number_image_url",
    },
    required_on_create={
        "motor_fingerprint",
        "chassis_number",
        "brand",
        "model",
        "purchase_price_cents",
        "current_warehouse_id",
    },
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "vehicle_type",
        "brand",
        "model",
        "color",
        "country_of_origin",
        "manufacturing_year",
        "purchase_price_cents",
        "sale_price_cents",
        "motor_fingerprint_image_url",
        "chassis_number_image_url",
    },
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "description", "location"},
    required_on_create={"name"},
)

ITEM_SEARCH_FIELDS = ("brand", "model", "color", "motor_fingerprint", "chassis_number")


def _check_vehicle_type(patch: dict) -> None:
    if "vehicle_type" in patch and patch["vehicle_type"] not in VEHICLE_TYPES:
        raise ValidationError(f"vehicle_type must be one of: {', '.join(VEHICLE_TYPES)}")


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


def _ensure_unique_identifiers(motor_fingerprint: str, chassis_number: str) -> None:
    clash = db.session.query(InventoryItem).filter(
        db.or_(
            InventoryItem.motor_fingerprint == motor_fingerprint,
            InventoryItem.chassis_number == chassis_number,
        )
    ).first()
    if clash:
        raise ConflictError("A vehicle with this motor fingerprint or chassis number already exists")


def create_item(payload: dict, *, user_id: int | None = None) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_CREATE_POLICY, partial=False)
    enforce_rules_inventory_item(patch)
    _check_vehicle_type(patch)

    warehouse = db.session.get(Warehouse, patch["current_warehouse_id"])
    if not warehouse:
        raise NotFoundError("Warehouse not found")
    if not warehouse.is_active:
        raise ValidationError("Warehouse is not active")
    if not warehouse.is_company_stock:
        raise ValidationError("New vehicles must be registered in a company warehouse")

    _ensure_unique_identifiers(patch["motor_fingerprint"], patch["chassis_number"])

    item = InventoryItem(**patch, created_by_user_id=user_id)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A vehicle with this motor fingerprint or chassis number already exists")
    return item


def update_item(item_id: int, payload: dict) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_UPDATE_POLICY, partial=True)
    enforce_rules_inventory_item(patch)
    _check_vehicle_type(patch)

    item = get_item(item_id)
    if item.status == ITEM_SOLD:
        raise ConflictError("Sold vehicles cannot be edited")

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def list_items(
    *,
    warehouse_id: int | None = None,
    status: str | None = None,
    vehicle_type: str | None = None,
    search: str | None = None,
    scope_warehouse_id: int | None = None,
    company_only: bool = False,
) -> list[dict]:
    """
    scope_warehouse_id confines the list to one warehouse (an agent's own);
    company_only confines it to company warehouses (showroom staff).
    """
    if status and status not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ITEM_STATUSES)}")

    query = db.session.query(InventoryItem)
    if scope_warehouse_id is not None:
        query = query.filter(InventoryItem.current_warehouse_id == scope_warehouse_id)
    if company_only:
        query = query.join(Warehouse, Warehouse.id == InventoryItem.current_warehouse_id).filter(
            Warehouse.type.in_(COMPANY_WAREHOUSE_TYPES)
        )
    if warehouse_id is not None:
        query = query.filter(InventoryItem.current_warehouse_id == warehouse_id)
    if status:
        query = query.filter(InventoryItem.status == status)
    if vehicle_type:
        query = query.filter(InventoryItem.vehicle_type == vehicle_type)

    rows = [item.to_dict() for item in query.order_by(InventoryItem.id.desc()).all()]
    return list_filters.search_rows(rows, search, ITEM_SEARCH_FIELDS)


# =============================================================================
# Warehouses
# =============================================================================

def list_warehouses(*, include_inactive: bool = False, warehouse_type: str | None = None) -> list[Warehouse]:
    query = db.session.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    if warehouse_type:
        query = query.filter(Warehouse.type == warehouse_type)
    return query.order_by(Warehouse.name).all()


def create_warehouse(payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    warehouse_type = patch.get("type", "main")
    if warehouse_type not in WAREHOUSE_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(WAREHOUSE_TYPES)}")
    if warehouse_type == "agent":
        raise ValidationError("Agent warehouses are created together with the agent")

    if db.session.query(Warehouse).filter_by(name=patch["name"]).first():
        raise ConflictError("A warehouse with this name already exists")

    warehouse = Warehouse(**patch)
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


def stock_value_by_warehouse() -> list[dict]:
    """Unsold vehicle counts and purchase value per warehouse."""
    rows = (
        db.session.query(
            Warehouse.id,
            Warehouse.name,
            Warehouse.type,
            db.func.count(InventoryItem.id),
            db.func.coalesce(db.func.sum(InventoryItem.purchase_price_cents), 0),
        )
        .outerjoin(
            InventoryItem,
            db.and_(
                InventoryItem.current_warehouse_id == Warehouse.id,
                InventoryItem.status != ITEM_SOLD,
            ),
        )
        .group_by(Warehouse.id, Warehouse.name, Warehouse.type)
        .order_by(Warehouse.name)
        .all()
    )
    return [
        {
            "warehouse_id": wid,
            "name": name,
            "type": wtype,
            "item_count": count,
            "purchase_value_cents": int(value),
        }
        for wid, name, wtype, count, value in rows
    ]
