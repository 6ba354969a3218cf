# backend/dealership/routes/transfers.py
"""
Warehouse transfer API routes.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import transfer_service
from ..services.transfer_service import TransferError
from ..validation import NotFoundError, ValidationError, coerce_int, require_amount_cents
from ..decorators import require_auth, require_permission


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


def _item_commissions(raw) -> dict[int, int]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("item_commissions must be an object of {item_id: bps}")
    return {coerce_int("item_id", k): coerce_int("commission_bps", v) for k, v in raw.items()}


def _debt_change(raw) -> dict | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("debt_change must be an object")
    return {
        "direction": raw.get("direction"),
        "amount_cents": require_amount_cents("debt_change.amount_cents", raw.get("amount_cents")),
        "description": raw.get("description"),
    }


@transfers_bp.route("", methods=["POST"])
@require_auth
@require_permission("TRANSFER_INVENTORY")
def create_transfer():
    """
    Move vehicles between warehouses.

    Request body:
    {
        "from_warehouse_id": int,
        "to_warehouse_id": int,
        "item_ids": [int],
        "commission_bps": int (optional, for agent warehouses),
        "item_commissions": {"<item_id>": int} (optional),
        "debt_change": {"direction": "increase"|"decrease", "amount_cents": int,
                        "description": str} (optional),
        "notes": str (optional)
    }

    Returns:
        201: Transfer created
        400: Invalid request
        403: Forbidden
    """
    data = request.get_json(silent=True) or {}

    try:
        item_ids = data["item_ids"]
        if not isinstance(item_ids, list):
            raise ValidationError("item_ids must be a list")
        commission = data.get("commission_bps")

        transfer = transfer_service.create_transfer(
            from_warehouse_id=coerce_int("from_warehouse_id", data["from_warehouse_id"]),
            to_warehouse_id=coerce_int("to_warehouse_id", data["to_warehouse_id"]),
            item_ids=[coerce_int("item_ids", i) for i in item_ids],
            user_id=g.current_user.id,
            commission_bps=None if commission is None else coerce_int("commission_bps", commission),
            item_commissions=_item_commissions(data.get("item_commissions")),
            notes=data.get("notes"),
            debt_change=_debt_change(data.get("debt_change")),
        )

        return jsonify({"transfer": transfer.to_dict()}), 201

    except KeyError as e:
        db.session.rollback()
        return jsonify({"error": f"Missing required field: {e.args[0]}"}), 400
    except (ValidationError, TransferError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("", methods=["GET"])
@require_auth
@require_permission("TRANSFER_INVENTORY")
def list_transfers():
    transfers = transfer_service.list_transfers(
        warehouse_id=request.args.get("warehouse_id", type=int),
        agent_id=request.args.get("agent_id", type=int),
    )
    return jsonify({"transfers": [t.to_dict() for t in transfers]}), 200


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_auth
@require_permission("TRANSFER_INVENTORY")
def get_transfer(transfer_id: int):
    try:
        transfer = transfer_service.get_transfer(transfer_id)
        return jsonify({"transfer": transfer.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
