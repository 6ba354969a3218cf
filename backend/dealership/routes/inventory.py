# Overview: Flask API routes for warehouses and vehicle inventory; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import inventory_service, permission_service
from ..validation import ConflictError, NotFoundError, ValidationError
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api")


def _scope_kwargs() -> dict:
    """Agents see their own warehouse; showroom staff see company stock."""
    user = g.current_user
    scope_agent = permission_service.agent_scope_id(user)
    if scope_agent is not None:
        agent = permission_service.get_agent_for_user(user)
        return {"scope_warehouse_id": agent.warehouse_id if agent and agent.warehouse_id else -1}
    if permission_service.is_company_scoped(user):
        return {"company_only": True}
    return {}


@inventory_bp.get("/warehouses")
@require_auth
@require_permission("VIEW_WAREHOUSES")
def list_warehouses_route():
    warehouses = inventory_service.list_warehouses(
        include_inactive=request.args.get("include_inactive") == "true",
        warehouse_type=request.args.get("type"),
    )
    if permission_service.is_company_scoped(g.current_user):
        warehouses = [w for w in warehouses if w.is_company_stock]
    return jsonify({"warehouses": [w.to_dict() for w in warehouses]}), 200


@inventory_bp.get("/warehouses/stock")
@require_auth
@require_permission("VIEW_REPORTS")
def warehouse_stock_route():
    return jsonify({"warehouses": inventory_service.stock_value_by_warehouse()}), 200


@inventory_bp.post("/warehouses")
@require_auth
@require_permission("MANAGE_WAREHOUSES")
def create_warehouse_route():
    """Request body: {"name": str, "type": "main"|"showroom"|"branch", "location": str, "description": str}"""
    data = request.get_json(silent=True) or {}
    try:
        warehouse = inventory_service.create_warehouse(data)
        return jsonify({"warehouse": warehouse.to_dict()}), 201
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create warehouse")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/inventory")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory_route():
    """Query params: warehouse_id, status, vehicle_type, search."""
    try:
        items = inventory_service.list_items(
            warehouse_id=request.args.get("warehouse_id", type=int),
            status=request.args.get("status"),
            vehicle_type=request.args.get("vehicle_type"),
            search=request.args.get("search"),
            **_scope_kwargs(),
        )
        return jsonify({"items": items, "count": len(items)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@inventory_bp.post("/inventory")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_inventory_route():
    """
    Register a vehicle in a company warehouse.

    Request body:
    {
        "motor_fingerprint": str, "chassis_number": str,
        "brand": str, "model": str, "vehicle_type": str (optional),
        "color": str, "country_of_origin": str, "manufacturing_year": int (optional),
        "purchase_price_cents": int, "sale_price_cents": int (optional),
        "current_warehouse_id": int
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_item(data, user_id=g.current_user.id)
        return jsonify({"item": item.to_dict()}), 201
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/inventory/<int:item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_inventory_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    scope = _scope_kwargs()
    if "scope_warehouse_id" in scope and item.current_warehouse_id != scope["scope_warehouse_id"]:
        return jsonify({"error": "Permission denied"}), 403
    if scope.get("company_only") and not (item.warehouse and item.warehouse.is_company_stock):
        return jsonify({"error": "Permission denied"}), 403
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.patch("/inventory/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_inventory_route(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_item(item_id, data)
        return jsonify({"item": item.to_dict()}), 200
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500
