# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import permission_service, sales_service
from ..services.ledger_service import LedgerError
from ..services.sales_service import SaleError
from ..validation import NotFoundError, ValidationError, coerce_int
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_args(data: dict) -> dict:
    """
    Common body of the three sale endpoints:
    {
        "inventory_item_id": int,
        "sale_price_cents": int (optional, defaults to the item's list price),
        "customer": {"customer_name", "customer_national_id", "customer_phone",
                     "customer_address", "customer_id_card_image_url"},
        "notes": str (optional)
    }
    """
    if "inventory_item_id" not in data:
        raise ValidationError("inventory_item_id is required")
    price = data.get("sale_price_cents")
    customer = data.get("customer")
    if customer is not None and not isinstance(customer, dict):
        raise ValidationError("customer must be an object")
    return {
        "item_id": coerce_int("inventory_item_id", data["inventory_item_id"]),
        "sale_price_cents": None if price is None else coerce_int("sale_price_cents", price),
        "customer": customer or {},
        "notes": data.get("notes"),
        "user_id": g.current_user.id,
    }


def _run_sale(create, failure_message: str, **extra):
    data = request.get_json(silent=True) or {}
    try:
        sale = create(**_sale_args(data), **extra)
        return jsonify({"sale": sale.to_dict()}), 201

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SaleError, LedgerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception(failure_message)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/agent")
@require_auth
@require_permission("CREATE_AGENT_SALE")
def create_agent_sale_route():
    """An agent sells a vehicle from its own warehouse."""
    agent = permission_service.get_agent_for_user(g.current_user)
    if agent is None:
        return jsonify({"error": "No agent profile is linked to this account"}), 403
    return _run_sale(sales_service.create_agent_direct_sale, "Failed to create agent sale", agent_id=agent.id)


@sales_bp.post("/on-behalf")
@require_auth
@require_permission("CREATE_ON_BEHALF_SALE")
def create_on_behalf_sale_route():
    """A manager records a sale for an offline agent; body adds "agent_id"."""
    data = request.get_json(silent=True) or {}
    if data.get("agent_id") is None:
        return jsonify({"error": "agent_id is required"}), 400
    try:
        agent_id = coerce_int("agent_id", data["agent_id"])
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return _run_sale(sales_service.create_on_behalf_sale, "Failed to create sale on behalf", agent_id=agent_id)


@sales_bp.post("/company")
@require_auth
@require_permission("CREATE_COMPANY_SALE")
def create_company_sale_route():
    """Direct sale from a company warehouse."""
    return _run_sale(sales_service.create_company_sale, "Failed to create company sale")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """Query params: sale_type, agent_id, date_from, date_to, limit."""
    user = g.current_user
    try:
        sales = sales_service.list_sales(
            sale_type=request.args.get("sale_type"),
            agent_id=request.args.get("agent_id", type=int),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            scope_agent_id=permission_service.agent_scope_id(user),
            company_only=permission_service.is_company_scoped(user),
            limit=min(request.args.get("limit", 200, type=int), 1000),
        )
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify({
        "sales": [s.to_dict() for s in sales],
        "count": len(sales),
        "totals": {
            "sale_price_cents": sum(s.sale_price_cents for s in sales),
            "profit_cents": sum(s.profit_cents for s in sales),
            "agent_commission_cents": sum(s.agent_commission_cents for s in sales),
            "company_share_cents": sum(s.company_share_cents for s in sales),
        },
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    user = g.current_user
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    scope = permission_service.agent_scope_id(user)
    if scope is not None and sale.agent_id != scope:
        return jsonify({"error": "Permission denied"}), 403
    if permission_service.is_company_scoped(user) and sales_service.is_agent_sale(sale):
        return jsonify({"error": "Permission denied"}), 403
    return jsonify({"sale": sale.to_dict()}), 200
